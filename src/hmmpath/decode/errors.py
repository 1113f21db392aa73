"""Errors raised while building or decoding a hidden Markov model.

Three tiers are kept apart so callers can tell them apart:

- ``ModelInputError``: the model itself is malformed (nothing to decode, or a
  probability outside the arithmetic domain of the active mode).
- ``ReachabilityError``: the model is well formed but makes the observation
  sequence impossible from some time step on.
- ``BacktrackError``: forward and backward passes disagree. Indicates a bug.
"""

from __future__ import annotations

from typing import Any, Literal, Tuple, Union

ProbabilityKind = Literal["start", "emission", "transition"]
ProbabilityKey = Union[int, Tuple[int, int]]


class DecodeError(Exception):
    """Base class for every decode failure."""


class ModelInputError(DecodeError, ValueError):
    """The model handed to the decoder is invalid."""


class NoObservations(ModelInputError):
    """The observation sequence is empty."""

    def __init__(self) -> None:
        super().__init__("Model has no observations to decode.")


class NoStates(ModelInputError):
    """The state set is empty."""

    def __init__(self) -> None:
        super().__init__("Model has no states.")


class InvalidProbability(ModelInputError):
    """
    A probability lies outside the valid range of the active mode.

    Parameters
    ----------
    value
        Offending value as stored in the model.
    kind
        Which table it came from.
    key
        State id (start), ``(state_id, obs_id)`` (emission) or
        ``(from_id, to_id)`` (transition).
    subject
        The caller's state/observation values, for messages.
    log_space
        Whether the decode was running on log-probabilities.
    """

    def __init__(
        self,
        value: float,
        *,
        kind: ProbabilityKind,
        key: ProbabilityKey,
        subject: Any = None,
        log_space: bool = False,
    ) -> None:
        self.value = value
        self.kind = kind
        self.key = key
        self.subject = subject
        self.log_space = log_space
        domain = "<= 0 (log-space)" if log_space else "in [0, 1]"
        where = subject if subject is not None else key
        super().__init__(f"Invalid {kind} probability {value!r} for {where}: expected a value {domain}.")


class UnknownStateError(KeyError):
    """A probability was registered against a state that is not in the model."""

    def __init__(self, state: Any) -> None:
        self.state = state
        super().__init__(f"State {state!r} is not registered in the model.")

    def __str__(self) -> str:
        return str(self.args[0])


class ReachabilityError(DecodeError):
    """The observation sequence cannot be explained by the model."""


class NoValidInitStates(ReachabilityError):
    """No state has both a start and an emission probability at step 0."""

    def __init__(self) -> None:
        self.step = 0
        super().__init__("No state can start the sequence: none has both a start and an emission probability for the first observation.")


class PathBroken(ReachabilityError):
    """The trellis became empty at ``step``; nothing explains the sequence from there on."""

    def __init__(self, step: int, message: str | None = None) -> None:
        self.step = step
        super().__init__(message or f"Path broken at step {step}: no state is reachable for this observation.")


class NoValidPath(PathBroken):
    """The final trellis layer is empty."""

    def __init__(self, step: int) -> None:
        super().__init__(step, f"No valid path: the last step ({step}) has no reachable state.")


class BacktrackError(DecodeError, RuntimeError):
    """A back-pointer is missing during backtracking (internal defect)."""

    def __init__(self, step: int, state_index: int) -> None:
        self.step = step
        self.state_index = state_index
        super().__init__(
            f"Internal error: no predecessor recorded for state index {state_index} at step {step}."
        )
