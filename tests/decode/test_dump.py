import numpy as np
import pytest
from rich.console import Console

from hmmpath.core.identity import NamedObservation, NamedState
from hmmpath.decode import dump
from hmmpath.decode.decoder import eval_path
from hmmpath.decode.model import build_model
from hmmpath.decode.trellis import Trellis

A = NamedState(1, "A")
B = NamedState(2, "B")
X = NamedObservation(1, "x")
Y = NamedObservation(2, "y")


def test_render_trellis_shows_scores_predecessors_and_gaps() -> None:
    model = build_model(
        [A, B],
        [X, Y],
        start={A: 0.5, B: 0.5},
        emission={(A, X): 1.0, (B, Y): 1.0},
        transition={(A, B): 0.5},
    )
    result = eval_path(model)
    text = dump.render_trellis(result.trellis, observations=model.observations)
    lines = text.splitlines()

    assert lines[0].split() == ["t", "obs", "A", "B"]
    assert lines[2].split() == ["0", "x", "0.5", dump.ABSENT_CELL]
    assert lines[3].split() == ["1", "y", dump.ABSENT_CELL, "0.25<-A"]


def test_render_trellis_without_observations_and_custom_labels() -> None:
    tr = Trellis(
        states=(A, B),
        scores=np.array([[-1.5, np.nan]]),
        backpointers=np.array([[-1, -1]], dtype=np.int64),
        log_space=True,
    )
    text = dump.render_trellis(tr, labeler=lambda s: s.name.lower(), precision=3)
    assert "a" in text.splitlines()[0].split()
    assert "-1.5" in text


def test_print_trellis_writes_to_stdout(capsys) -> None:
    tr = Trellis(
        states=(A,),
        scores=np.array([[0.75]]),
        backpointers=np.array([[-1]], dtype=np.int64),
    )
    dump.print_trellis(tr)
    assert "0.75" in capsys.readouterr().out


def test_print_trellis_surfaces_console_write_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_print(self, *args, **kwargs) -> None:
        raise OSError("stdout closed")

    monkeypatch.setattr(Console, "print", broken_print)
    tr = Trellis(states=(A,), scores=np.array([[0.75]]), backpointers=np.array([[-1]], dtype=np.int64))

    with pytest.raises(OSError, match="stdout closed"):
        dump.print_trellis(tr)
