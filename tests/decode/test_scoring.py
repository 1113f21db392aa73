import math

import pytest

from hmmpath.core.identity import NamedObservation, NamedState
from hmmpath.decode.model import build_model
from hmmpath.decode.scoring import score_path

A = NamedState(1, "A")
B = NamedState(2, "B")
X = NamedObservation(1, "x")
Y = NamedObservation(2, "y")


def _model():
    return build_model(
        [A, B],
        [X, Y],
        start={A: 0.8, B: 0.2},
        emission={(A, X): 0.5, (B, X): 0.5, (B, Y): 0.9},
        transition={(A, B): 0.25, (B, B): 1.0},
    )


def test_linear_score_chains_left_to_right() -> None:
    assert score_path(_model(), [A, B]) == ((0.8 * 0.5) * 0.25) * 0.9


def test_log_score_sums_terms() -> None:
    log_model = _model().to_log_space()
    expected = ((math.log(0.8) + math.log(0.5)) + math.log(0.25)) + math.log(0.9)
    assert score_path(log_model, [A, B], log_space=True) == expected


@pytest.mark.parametrize(
    "path, message",
    [
        ([A], "observations"),
        ([A, A], "No transition"),
        ([B, A], "No transition"),
    ],
)
def test_invalid_paths_raise(path, message) -> None:
    with pytest.raises(ValueError, match=message):
        score_path(_model(), path)


def test_missing_start_or_emission_raise() -> None:
    model = _model()
    model.put_transition_probability(A, A, 1.0)
    with pytest.raises(ValueError, match="no emission"):
        score_path(model, [A, A])

    no_start = build_model([A], [X], emission={(A, X): 1.0})
    with pytest.raises(ValueError, match="no start probability"):
        score_path(no_start, [A])


def test_empty_path_raises() -> None:
    empty = build_model([A], [])
    with pytest.raises(ValueError, match="empty path"):
        score_path(empty, [])
