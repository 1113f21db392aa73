"""Independent scoring of a given state path."""

from __future__ import annotations

import operator
from typing import Any, Sequence

from hmmpath.decode.model import HMMModel


def score_path(model: HMMModel, path: Sequence[Any], *, log_space: bool = False) -> float:
    """
    Score ``path`` against the model's observation sequence.

    Terms are chained left to right in the same order the decoder uses:
    ``start (op) emission[0]``, then ``(score (op) transition) (op) emission[t]``.

    Raises
    ------
    ValueError
        If the path length differs from the observation count, or the path
        uses an absent start, emission or transition entry.
    """

    observations = model.observations
    if len(path) != len(observations):
        raise ValueError(f"Path has {len(path)} states but the model has {len(observations)} observations.")
    if not path:
        raise ValueError("Cannot score an empty path.")

    op = operator.add if log_space else operator.mul

    start = model.start_probability(path[0])
    if start is None:
        raise ValueError(f"State {path[0]!r} has no start probability.")
    score = op(start, _emission(model, path[0], observations[0], 0))

    for t in range(1, len(path)):
        trans = model.transition_probability(path[t - 1], path[t])
        if trans is None:
            raise ValueError(f"No transition {path[t - 1]!r} -> {path[t]!r} (step {t}).")
        score = op(op(score, trans), _emission(model, path[t], observations[t], t))
    return float(score)


def _emission(model: HMMModel, state: Any, observation: Any, t: int) -> float:
    p = model.emission_probability(state, observation)
    if p is None:
        raise ValueError(f"State {state!r} has no emission for observation {observation!r} (step {t}).")
    return p
