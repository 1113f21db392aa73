"""Trellis snapshot produced by the forward pass."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from hmmpath.decode.errors import BacktrackError

NO_PREDECESSOR: int = -1


@dataclass(frozen=True)
class Trellis:
    """
    Best score and predecessor per (time step, state).

    Parameters
    ----------
    states
        Model states in registration order; column ``j`` refers to ``states[j]``.
    scores
        Shape (T, S). Best cumulative score reaching a state at a step; NaN where
        the state is not reachable.
    backpointers
        Shape (T, S). Registration index of the best predecessor, or
        ``NO_PREDECESSOR`` at step 0 and wherever the state is not reachable.
    log_space
        True when ``scores`` hold log-probabilities.

    Usage example
    -------------
        result = eval_path(model)
        for state, (score, prev) in result.trellis.layer(1).items():
            print(state, score, prev)
    """

    states: Tuple[Any, ...]
    scores: NDArray[np.float64]
    backpointers: NDArray[np.int64]
    log_space: bool = False

    def __post_init__(self) -> None:
        if self.scores.ndim != 2 or self.scores.shape[1] != len(self.states):
            raise ValueError(f"scores must have shape (T, {len(self.states)}), got {self.scores.shape}")
        if self.backpointers.shape != self.scores.shape:
            raise ValueError(
                f"backpointers shape {self.backpointers.shape} does not match scores shape {self.scores.shape}"
            )

    @property
    def n_steps(self) -> int:
        return int(self.scores.shape[0])

    @property
    def n_states(self) -> int:
        return int(self.scores.shape[1])

    def reachable(self, t: int) -> NDArray[np.bool_]:
        """Boolean mask of states present at step ``t``."""

        return ~np.isnan(self.scores[t])

    def layer(self, t: int) -> Dict[Any, Tuple[float, Optional[Any]]]:
        """Mapping view of one step: ``state -> (score, predecessor state or None)``, in registration order."""

        out: Dict[Any, Tuple[float, Optional[Any]]] = {}
        for j in np.flatnonzero(self.reachable(t)):
            prev = int(self.backpointers[t, j])
            out[self.states[j]] = (
                float(self.scores[t, j]),
                None if prev == NO_PREDECESSOR else self.states[prev],
            )
        return out

    def best_terminal(self) -> int:
        """Index of the best state at the last step; ties go to the lowest index."""

        last = self.scores[-1]
        masked = np.where(np.isnan(last), -np.inf, last)
        return int(np.argmax(masked))

    def backtrack(self, terminal: int) -> List[int]:
        """Follow back-pointers from ``terminal`` at the last step to step 0."""

        T = self.n_steps
        path = [0] * T
        path[-1] = terminal
        for t in range(T - 1, 0, -1):
            prev = int(self.backpointers[t, path[t]])
            if prev == NO_PREDECESSOR or np.isnan(self.scores[t - 1, prev]):
                raise BacktrackError(t, path[t])
            path[t - 1] = prev
        if np.isnan(self.scores[0, path[0]]):
            raise BacktrackError(0, path[0])
        return path

    def state_path(self, indices: Sequence[int]) -> Tuple[Any, ...]:
        return tuple(self.states[i] for i in indices)
