"""Viterbi decoding over a sparse HMM in linear or log-probability arithmetic."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from hmmpath.core.identity import identity_of
from hmmpath.decode.errors import (
    InvalidProbability,
    NoObservations,
    NoStates,
    NoValidInitStates,
    NoValidPath,
    PathBroken,
)
from hmmpath.decode.model import HMMModel
from hmmpath.decode.trellis import NO_PREDECESSOR, Trellis

logger = logging.getLogger(__name__)


# ---------- Arithmetic domains ----------


@dataclass(frozen=True)
class Domain:
    """
    Arithmetic used to chain probabilities.

    ``impossible`` is the score that never enters the trellis: 0.0 for linear
    probabilities, ``-inf`` for log-probabilities. It is valid input.
    """

    name: str
    combine: Callable[[Any, Any], Any]
    impossible: float

    @property
    def log_space(self) -> bool:
        return self.name == "log"

    def is_valid(self, value: float) -> bool:
        # NaN fails both comparisons.
        if self.log_space:
            return bool(value <= 0.0)
        return bool(0.0 <= value <= 1.0)


LINEAR = Domain(name="linear", combine=np.multiply, impossible=0.0)
LOG = Domain(name="log", combine=np.add, impossible=-np.inf)


def domain_for(log_space: bool) -> Domain:
    return LOG if log_space else LINEAR
# ---------- Table compilation ----------


@dataclass(frozen=True)
class CompiledTables:
    """
    Dense copies of the model tables in registration order.

    NaN marks an absent start or emission entry. Start and emission values are
    validated on compilation; transitions are validated when the forward pass
    reads them (see :func:`check_transitions`).

    Parameters
    ----------
    start
        Shape (S,).
    emission
        Shape (T, S); row ``t`` holds the emission of every state for observation ``t``.
    transition
        Shape (S, S) with source on rows, destination on columns. Raw values.
    transition_defined
        Shape (S, S); True where the model stores a transition.
    """

    states: Tuple[Any, ...]
    start: NDArray[np.float64]
    emission: NDArray[np.float64]
    transition: NDArray[np.float64]
    transition_defined: NDArray[np.bool_]


def compile_tables(model: HMMModel, domain: Domain) -> CompiledTables:
    """
    Validate start and emission entries and lay all tables out as dense arrays.

    Raises
    ------
    NoObservations, NoStates
        Nothing to decode.
    InvalidProbability
        First value outside the domain: start values, then emissions in time order.
    """

    observations = model.observations
    states = model.states
    if not observations:
        raise NoObservations()
    if not states:
        raise NoStates()

    S = len(states)
    T = len(observations)
    state_ids = [identity_of(s) for s in states]

    start_table = model.start_table()
    start = np.full(S, np.nan, dtype=float)
    for j, sid in enumerate(state_ids):
        p = start_table.get(sid)
        if p is None:
            continue
        _check(domain, p, kind="start", key=sid, subject=states[j])
        start[j] = p

    emission_table = model.emission_table()
    rows: Dict[int, NDArray[np.float64]] = {}
    emission = np.empty((T, S), dtype=float)
    for t, obs in enumerate(observations):
        oid = identity_of(obs)
        row = rows.get(oid)
        if row is None:
            row = np.full(S, np.nan, dtype=float)
            for j, sid in enumerate(state_ids):
                p = emission_table.get((sid, oid))
                if p is None:
                    continue
                _check(domain, p, kind="emission", key=(sid, oid), subject=(states[j], obs))
                row[j] = p
            rows[oid] = row
        emission[t] = row

    transition_table = model.transition_table()
    transition = np.full((S, S), np.nan, dtype=float)
    defined = np.zeros((S, S), dtype=bool)
    for i, src in enumerate(state_ids):
        for j, dst in enumerate(state_ids):
            p = transition_table.get((src, dst))
            if p is None:
                continue
            transition[i, j] = p
            defined[i, j] = True

    return CompiledTables(
        states=states, start=start, emission=emission, transition=transition, transition_defined=defined
    )


def check_transitions(
    tables: CompiledTables,
    domain: Domain,
    consulted: Optional[NDArray[np.bool_]] = None,
) -> None:
    """
    Validate stored transitions, restricted to ``consulted`` when given.

    Raises
    ------
    InvalidProbability
        First invalid transition in registration order (source, then destination).
    """

    mask = tables.transition_defined if consulted is None else consulted & tables.transition_defined
    values = tables.transition
    with np.errstate(invalid="ignore"):
        valid = values <= 0.0 if domain.log_space else (values >= 0.0) & (values <= 1.0)
    bad = np.argwhere(mask & ~valid)
    if len(bad) == 0:
        return
    i, j = (int(k) for k in bad[0])
    src, dst = tables.states[i], tables.states[j]
    _check(
        domain,
        float(values[i, j]),
        kind="transition",
        key=(identity_of(src), identity_of(dst)),
        subject=(src, dst),
    )


def _check(domain: Domain, value: float, *, kind: str, key: Any, subject: Any) -> None:
    if not domain.is_valid(value):
        raise InvalidProbability(value, kind=kind, key=key, subject=subject, log_space=domain.log_space)  # type: ignore[arg-type]


# ---------- Forward pass ----------


def _possible(scores: NDArray[np.float64], domain: Domain) -> NDArray[np.bool_]:
    return ~np.isnan(scores) & (scores != domain.impossible)


def build_trellis(model: HMMModel, tables: CompiledTables, domain: Domain) -> Trellis:
    """
    Fill the trellis left to right.

    For each step ``t > 0`` and destination ``s`` the candidate from ``r`` is
    ``(score[t-1, r] (op) transition[r, s]) (op) emission[t, s]``. Absent and
    impossible candidates are dropped; the best remaining one wins, ties going
    to the lowest registration index.

    A transition is validated the first time it is read: its source is in the
    trellis at ``t-1`` and its destination has an emission at ``t``.
    """

    T, S = tables.emission.shape
    scores = np.full((T, S), np.nan, dtype=float)
    backpointers = np.full((T, S), NO_PREDECESSOR, dtype=np.int64)

    first = domain.combine(tables.start, tables.emission[0])
    keep = _possible(first, domain)
    scores[0, keep] = first[keep]
    if not keep.any():
        raise NoValidInitStates()
    logger.debug("step 0: %d/%d states reachable", int(keep.sum()), S)

    cols = np.arange(S)
    for t in range(1, T):
        present = ~np.isnan(scores[t - 1])
        check_transitions(tables, domain, present[:, None] & ~np.isnan(tables.emission[t])[None, :])

        cand = domain.combine(domain.combine(scores[t - 1][:, None], tables.transition), tables.emission[t][None, :])
        valid = _possible(cand, domain)
        masked = np.where(valid, cand, -np.inf)
        best = np.argmax(masked, axis=0)
        has = valid.any(axis=0)
        scores[t] = np.where(has, masked[best, cols], np.nan)
        backpointers[t] = np.where(has, best, NO_PREDECESSOR)

        n_reachable = int(has.sum())
        logger.debug("step %d: %d/%d states reachable", t, n_reachable, S)
        if n_reachable == 0:
            if t == T - 1:
                raise NoValidPath(t)
            raise PathBroken(t)

    return Trellis(states=model.states, scores=scores, backpointers=backpointers, log_space=domain.log_space)


# ---------- Public entry points ----------


@dataclass(frozen=True)
class ViterbiPath:
    """
    Most probable state sequence and its score.

    ``probability`` is a probability in linear mode and a log-probability in
    log mode. ``path`` has one state per observation.
    """

    probability: float
    path: Tuple[Any, ...]
    indices: Tuple[int, ...]
    trellis: Trellis

    def as_tuple(self) -> Tuple[float, Tuple[Any, ...]]:
        return self.probability, self.path


def decode(model: HMMModel, *, log_space: bool = False) -> ViterbiPath:
    """
    Run Viterbi decoding on a populated model.

    The model is only read. Concurrent calls on an unmutated model are safe.
    Start and emission values are validated before the forward pass; a
    transition is validated when the forward pass first reads it, so a
    transition that can never be taken does not fail the decode.

    Raises
    ------
    ModelInputError
        ``NoObservations``, ``NoStates`` or ``InvalidProbability``.
    ReachabilityError
        ``NoValidInitStates``, ``PathBroken`` or ``NoValidPath``.
    BacktrackError
        Forward and backward passes disagree.
    """

    domain = domain_for(log_space)
    logger.debug("Decoding %r in %s space", model, domain.name)

    tables = compile_tables(model, domain)
    trellis = build_trellis(model, tables, domain)

    terminal = trellis.best_terminal()
    indices = trellis.backtrack(terminal)
    probability = float(trellis.scores[-1, terminal])

    logger.debug("Decoded %d steps, score=%r", len(indices), probability)
    return ViterbiPath(
        probability=probability,
        path=trellis.state_path(indices),
        indices=tuple(indices),
        trellis=trellis,
    )


def eval_path(model: HMMModel) -> ViterbiPath:
    """Decode with probabilities in [0, 1], combined by multiplication."""

    return decode(model, log_space=False)


def eval_path_log_probabilities(model: HMMModel) -> ViterbiPath:
    """Decode with log-probabilities (<= 0), combined by addition."""

    return decode(model, log_space=True)
