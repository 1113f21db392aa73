"""Model container: states, observation sequence and the three probability tables."""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Generic, List, Mapping, Optional, Sequence, Tuple, TypeVar

from hmmpath.core.identity import NamedObservation, NamedState, identity_of
from hmmpath.decode.errors import UnknownStateError

logger = logging.getLogger(__name__)

S = TypeVar("S")
O = TypeVar("O")


class HMMModel(Generic[S, O]):
    """
    Hidden Markov model tables keyed by integer identity.

    States live in a dense list in registration order; that order is the
    canonical iteration (and tie-break) order for decoding. Tables are sparse:
    an absent start entry means "cannot start here", an absent emission means
    "cannot explain this observation", an absent transition is forbidden.

    Every ``put_*`` call overwrites a previous value for the same key (last
    write wins). Values are stored as given; range checks belong to the decode
    mode that consumes them.

    Usage example
    -------------
        model = HMMModel()
        healthy, fever = NamedState(1, "Healthy"), NamedState(2, "Fever")
        model.add_state(healthy)
        model.add_state(fever)
        model.add_observation(NamedObservation(1, "normal"))
        model.put_start_probability(healthy, 0.6)
        model.put_transition_probability(healthy, fever, 0.3)
    """

    def __init__(self) -> None:
        self._states: List[S] = []
        self._state_index: Dict[int, int] = {}
        self._observations: List[O] = []
        self._start: Dict[int, float] = {}
        self._emission: Dict[Tuple[int, int], float] = {}
        self._transition: Dict[Tuple[int, int], float] = {}

    # ---------- Registration ----------

    def add_state(self, state: S) -> None:
        """Register a state. A state with an already-known id replaces the old value in place."""

        ident = identity_of(state)
        idx = self._state_index.get(ident)
        if idx is not None:
            logger.warning("State id %d registered twice; replacing %r with %r", ident, self._states[idx], state)
            self._states[idx] = state
            return
        self._state_index[ident] = len(self._states)
        self._states.append(state)

    def add_observation(self, observation: O) -> None:
        """Append an observation to the sequence (time axis)."""

        identity_of(observation)
        self._observations.append(observation)

    def put_start_probability(self, state: S, value: float) -> None:
        self._start[self._require_state(state)] = float(value)

    def put_emission_probability(self, state: S, observation: O, value: float) -> None:
        key = (self._require_state(state), identity_of(observation))
        self._emission[key] = float(value)

    def put_transition_probability(self, src: S, dst: S, value: float) -> None:
        key = (self._require_state(src), self._require_state(dst))
        self._transition[key] = float(value)

    def _require_state(self, state: S) -> int:
        ident = identity_of(state)
        if ident not in self._state_index:
            raise UnknownStateError(state)
        return ident

    # ---------- Read access ----------

    @property
    def states(self) -> Tuple[S, ...]:
        return tuple(self._states)

    @property
    def observations(self) -> Tuple[O, ...]:
        return tuple(self._observations)

    def num_states(self) -> int:
        return len(self._states)

    def num_observations(self) -> int:
        return len(self._observations)

    def state_index(self, state: S) -> int:
        """Registration index of a state."""

        ident = identity_of(state)
        if ident not in self._state_index:
            raise UnknownStateError(state)
        return self._state_index[ident]

    def start_probability(self, state: S) -> Optional[float]:
        return self._start.get(identity_of(state))

    def emission_probability(self, state: S, observation: O) -> Optional[float]:
        return self._emission.get((identity_of(state), identity_of(observation)))

    def transition_probability(self, src: S, dst: S) -> Optional[float]:
        return self._transition.get((identity_of(src), identity_of(dst)))

    def start_table(self) -> Mapping[int, float]:
        """Read-only view of ``{state_id: p}``."""
        return dict(self._start)

    def emission_table(self) -> Mapping[Tuple[int, int], float]:
        """Read-only view of ``{(state_id, obs_id): p}``."""
        return dict(self._emission)

    def transition_table(self) -> Mapping[Tuple[int, int], float]:
        """Read-only view of ``{(from_id, to_id): p}``."""
        return dict(self._transition)

    # ---------- Conversions ----------

    def to_log_space(self) -> "HMMModel[S, O]":
        """
        Return a copy whose probabilities are natural logs of this model's.

        Zero maps to ``-inf``. Negative inputs are left for the decoder to reject
        as they have no logarithm; they are stored as NaN.
        """

        out: HMMModel[S, O] = HMMModel()
        out._states = list(self._states)
        out._state_index = dict(self._state_index)
        out._observations = list(self._observations)
        out._start = {k: _safe_log(v) for k, v in self._start.items()}
        out._emission = {k: _safe_log(v) for k, v in self._emission.items()}
        out._transition = {k: _safe_log(v) for k, v in self._transition.items()}
        return out

    def to_mapping(self) -> Dict[str, Any]:
        """
        Serialize to a plain dict keyed by names (``str(value)``).

        Intended for :class:`NamedState`/:class:`NamedObservation` models.
        """

        states = {identity_of(s): s for s in self._states}
        obs_by_id: Dict[int, O] = {}
        for o in self._observations:
            obs_by_id.setdefault(identity_of(o), o)

        def _name(value: Any) -> str:
            return str(getattr(value, "name", value))

        emission: Dict[str, Dict[str, float]] = {}
        for (sid, oid), p in self._emission.items():
            if oid not in obs_by_id:
                continue
            emission.setdefault(_name(states[sid]), {})[_name(obs_by_id[oid])] = p
        transition: Dict[str, Dict[str, float]] = {}
        for (src, dst), p in self._transition.items():
            transition.setdefault(_name(states[src]), {})[_name(states[dst])] = p

        return {
            "states": [{"id": identity_of(s), "name": _name(s)} for s in self._states],
            "observations": [{"id": identity_of(o), "name": _name(o)} for o in self._observations],
            "start": {_name(states[sid]): p for sid, p in self._start.items()},
            "emission": emission,
            "transition": transition,
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "HMMModel[NamedState, NamedObservation]":
        """
        Build a model of :class:`NamedState`/:class:`NamedObservation` values.

        ``data`` follows the layout produced by :meth:`to_mapping`. Names are
        resolved to values; an unknown name raises ``KeyError``/``UnknownStateError``.
        """

        model: HMMModel[NamedState, NamedObservation] = HMMModel()
        states: Dict[str, NamedState] = {}
        for entry in data.get("states", []):
            state = NamedState(id=int(entry["id"]), name=str(entry["name"]))
            states[state.name] = state
            model.add_state(state)

        symbols: Dict[str, NamedObservation] = {}
        for entry in data.get("observations", []):
            obs = NamedObservation(id=int(entry["id"]), name=str(entry["name"]))
            symbols.setdefault(obs.name, obs)
            model.add_observation(obs)

        for name, p in (data.get("start") or {}).items():
            model.put_start_probability(_lookup(states, name, "state"), _as_float(p))
        for name, row in (data.get("emission") or {}).items():
            state = _lookup(states, name, "state")
            for obs_name, p in row.items():
                model.put_emission_probability(state, _lookup(symbols, obs_name, "observation"), _as_float(p))
        for name, row in (data.get("transition") or {}).items():
            src = _lookup(states, name, "state")
            for dst_name, p in row.items():
                model.put_transition_probability(src, _lookup(states, dst_name, "state"), _as_float(p))
        return model

    def __repr__(self) -> str:
        return (
            f"HMMModel(states={len(self._states)}, observations={len(self._observations)}, "
            f"start={len(self._start)}, emission={len(self._emission)}, transition={len(self._transition)})"
        )


def _safe_log(value: float) -> float:
    if value == 0.0:
        return -math.inf
    if value < 0.0 or math.isnan(value):
        return math.nan
    return math.log(value)


def _as_float(value: Any) -> float:
    # JSON has no literal for infinities; "-inf" strings are accepted instead.
    if isinstance(value, str):
        return float(value.strip())
    return float(value)


def _lookup(table: Mapping[str, Any], name: str, what: str) -> Any:
    if name not in table:
        raise KeyError(f"Unknown {what} '{name}'. Expected one of {sorted(table)}.")
    return table[name]


def build_model(
    states: Sequence[S],
    observations: Sequence[O],
    *,
    start: Mapping[S, float] | None = None,
    emission: Mapping[Tuple[S, O], float] | None = None,
    transition: Mapping[Tuple[S, S], float] | None = None,
) -> HMMModel[S, O]:
    """Convenience constructor from value-keyed mappings (state values must be hashable)."""

    model: HMMModel[S, O] = HMMModel()
    for s in states:
        model.add_state(s)
    for o in observations:
        model.add_observation(o)
    for s, p in (start or {}).items():
        model.put_start_probability(s, p)
    for (s, o), p in (emission or {}).items():
        model.put_emission_probability(s, o, p)
    for (src, dst), p in (transition or {}).items():
        model.put_transition_probability(src, dst, p)
    return model
