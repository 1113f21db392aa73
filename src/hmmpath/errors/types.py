from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional
import traceback as _traceback

from hmmpath.decode.errors import BacktrackError, ModelInputError, ReachabilityError, UnknownStateError
from hmmpath.io.model_file import ModelFileError


class StepStatus(str, Enum):
    """Status of a named step in a run."""
    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"


class FailureCategory(str, Enum):
    """Which tier a failure belongs to."""
    MODEL_INPUT = "model_input"
    UNREACHABLE = "unreachable"
    INTERNAL = "internal"
    OTHER = "other"


def classify_exception(exc: BaseException) -> FailureCategory:
    """
    Map an exception to a failure tier.

    Malformed models and impossible observation sequences are reported
    separately so a batch summary tells "fix your tables" apart from
    "this sequence cannot be explained".
    """
    if isinstance(exc, (ModelInputError, ModelFileError, UnknownStateError)):
        return FailureCategory.MODEL_INPUT
    if isinstance(exc, ReachabilityError):
        return FailureCategory.UNREACHABLE
    if isinstance(exc, BacktrackError):
        return FailureCategory.INTERNAL
    return FailureCategory.OTHER


@dataclass(frozen=True)
class FailureRecord:
    """
    A structured record of a step failure or skip.

    Usage example
    -------------
        rec = FailureRecord(step_name="decode:weather", status=StepStatus.FAILED, message="boom")
    """
    step_name: str
    status: StepStatus
    message: str
    exc_type: Optional[str] = None
    category: Optional[FailureCategory] = None
    traceback: Optional[str] = None
    context: Optional[Mapping[str, Any]] = None
    caused_by: Optional[str] = None  # SKIPPED only

    @staticmethod
    def from_exception(*, step_name: str, exc: BaseException, context: Optional[Mapping[str, Any]]) -> "FailureRecord":
        tb = "".join(_traceback.format_exception(type(exc), exc, exc.__traceback__))
        return FailureRecord(
            step_name=step_name,
            status=StepStatus.FAILED,
            message=str(exc),
            exc_type=type(exc).__name__,
            category=classify_exception(exc),
            traceback=tb,
            context=context,
        )
