import numpy as np
import pytest

from hmmpath.core.identity import NamedState
from hmmpath.decode.errors import BacktrackError
from hmmpath.decode.trellis import NO_PREDECESSOR, Trellis

A = NamedState(1, "A")
B = NamedState(2, "B")


def _trellis() -> Trellis:
    nan = np.nan
    scores = np.array([[0.5, 0.2], [nan, 0.3], [0.1, 0.1]])
    bp = np.array([[NO_PREDECESSOR, NO_PREDECESSOR], [NO_PREDECESSOR, 0], [1, 1]], dtype=np.int64)
    return Trellis(states=(A, B), scores=scores, backpointers=bp)


def test_layer_is_mapping_view_in_registration_order() -> None:
    tr = _trellis()
    assert tr.layer(0) == {A: (0.5, None), B: (0.2, None)}
    assert tr.layer(1) == {B: (0.3, A)}
    assert list(tr.layer(2)) == [A, B]
    assert tr.n_steps == 3
    assert tr.n_states == 2
    assert tr.reachable(1).tolist() == [False, True]


def test_best_terminal_breaks_ties_by_lowest_index() -> None:
    assert _trellis().best_terminal() == 0


def test_backtrack_follows_pointers() -> None:
    tr = _trellis()
    assert tr.backtrack(0) == [0, 1, 0]
    assert tr.state_path([0, 1, 0]) == (A, B, A)


def test_backtrack_raises_on_missing_predecessor() -> None:
    tr = _trellis()
    tr.backpointers[2, 0] = NO_PREDECESSOR
    with pytest.raises(BacktrackError) as excinfo:
        tr.backtrack(0)
    assert excinfo.value.step == 2
    assert isinstance(excinfo.value, RuntimeError)


def test_backtrack_raises_when_pointer_targets_unreachable_state() -> None:
    tr = _trellis()
    tr.backpointers[2, 0] = 0  # A is not reachable at step 1
    with pytest.raises(BacktrackError, match="Internal error"):
        tr.backtrack(0)


def test_shape_mismatch_is_rejected() -> None:
    with pytest.raises(ValueError, match="scores must have shape"):
        Trellis(states=(A,), scores=np.zeros((2, 2)), backpointers=np.zeros((2, 2), dtype=np.int64))
    with pytest.raises(ValueError, match="backpointers shape"):
        Trellis(states=(A, B), scores=np.zeros((2, 2)), backpointers=np.zeros((3, 2), dtype=np.int64))
