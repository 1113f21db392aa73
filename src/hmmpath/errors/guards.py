from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional

from .reporter import ErrorReporter


@contextmanager
def step(
    step_name: str,
    reporter: ErrorReporter,
    *,
    context: Optional[Mapping[str, Any]] = None,
) -> Iterator[None]:
    """
    Context manager wrapping a named step.

    Behavior
    --------
    - debug mode: exception is re-raised (hard stop).
    - run mode: exception is recorded and suppressed; caller continues after the block.

    Usage example
    -------------
        with step("decode:weather", reporter, context={"model": "weather.yaml"}):
            result = eval_path(model)
    """
    try:
        yield
    except Exception as exc:
        reporter.mark_failed(step_name=step_name, exc=exc, context=context)
        if reporter.cfg.mode == "debug":
            raise
    else:
        reporter.mark_ok(step_name)
