from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .config import ErrorHandlingConfig
from .logging import JsonlEventLogger
from .types import FailureCategory, FailureRecord, StepStatus


@dataclass
class ErrorReporter:
    """
    Collects step outcomes (OK / FAILED / SKIPPED) and renders end-of-run summaries.

    Failures are tagged with a :class:`FailureCategory` so a batch of decodes
    reports malformed models separately from sequences the model cannot explain.

    Usage example
    -------------
        reporter = ErrorReporter(cfg=cfg, logger=logger, event_logger=event_logger)
        reporter.mark_ok("load:weather")
        reporter.mark_failed(step_name="decode:weather", exc=exc, context={"model": "weather.yaml"})
        print(reporter.render_summary())
    """

    cfg: ErrorHandlingConfig
    logger: logging.Logger
    event_logger: Optional[JsonlEventLogger] = None

    def __post_init__(self) -> None:
        """Initialize run-scoped state."""
        self._run_id = self.cfg.resolved_run_id()
        self._records: list[FailureRecord] = []
        self._status: dict[str, StepStatus] = {}

    @property
    def records(self) -> tuple[FailureRecord, ...]:
        return tuple(self._records)

    def status(self, step_name: str) -> Optional[StepStatus]:
        """Return the current status for a step, if present."""
        return self._status.get(step_name)

    def ok(self, step_name: str) -> bool:
        return self._status.get(step_name) == StepStatus.OK

    def failed(self, step_name: str) -> bool:
        return self._status.get(step_name) == StepStatus.FAILED

    def skipped(self, step_name: str) -> bool:
        return self._status.get(step_name) == StepStatus.SKIPPED

    def failures_count(self) -> int:
        """Return the total number of failed steps."""
        return sum(1 for s in self._status.values() if s == StepStatus.FAILED)

    def has_failures(self) -> bool:
        return self.failures_count() > 0

    def failures_by_category(self) -> dict[FailureCategory, int]:
        """Count failed steps per failure tier."""
        counts = Counter(
            rec.category for rec in self._records if rec.status == StepStatus.FAILED and rec.category is not None
        )
        return dict(counts)

    def mark_ok(self, step_name: str) -> None:
        """Record a successful step."""
        self._status[step_name] = StepStatus.OK
        if self.event_logger is not None:
            self.event_logger.write(event="step_ok", step=step_name, level="INFO")

    def mark_skipped(self, *, step_name: str, caused_by: str, context: Optional[Mapping[str, Any]] = None) -> None:
        """Record a skipped step and its dependency cause."""
        self._status[step_name] = StepStatus.SKIPPED
        rec = FailureRecord(
            step_name=step_name,
            status=StepStatus.SKIPPED,
            message=f"Skipped because dependency '{caused_by}' failed or was skipped.",
            context=context,
            caused_by=caused_by,
        )
        self._records.append(rec)
        self.logger.warning("Skipping step '%s' (caused_by=%s)", step_name, caused_by, extra={"step": step_name})
        if self.event_logger is not None:
            self.event_logger.write(
                event="step_skipped",
                step=step_name,
                level="WARNING",
                context=context,
                message=rec.message,
            )

    def mark_failed(self, *, step_name: str, exc: BaseException, context: Optional[Mapping[str, Any]] = None) -> None:
        """Record a failed step and associated exception details."""
        self._status[step_name] = StepStatus.FAILED
        rec = FailureRecord.from_exception(step_name=step_name, exc=exc, context=context)
        self._records.append(rec)

        log = self.logger.critical if rec.category == FailureCategory.INTERNAL else self.logger.error
        log(
            "Step '%s' failed [%s]: %s (%s)",
            step_name,
            rec.category.value if rec.category else "-",
            str(exc),
            type(exc).__name__,
            extra={"step": step_name},
        )
        self.logger.debug("Traceback for step '%s':\n%s", step_name, rec.traceback, extra={"step": step_name})

        if self.event_logger is not None:
            self.event_logger.write(
                event="step_failed",
                step=step_name,
                level="ERROR",
                context=context,
                exc=exc,
                category=rec.category.value if rec.category else None,
            )

    def render_summary(self) -> str:
        """Render a human-readable summary with details and artifact paths."""
        ok_n = sum(1 for s in self._status.values() if s == StepStatus.OK)
        fail_n = sum(1 for s in self._status.values() if s == StepStatus.FAILED)
        skip_n = sum(1 for s in self._status.values() if s == StepStatus.SKIPPED)

        lines: list[str] = []
        lines.append(f"Run summary (run_id={self._run_id}, mode={self.cfg.mode})")
        lines.append(f"  OK:   {ok_n}")
        lines.append(f"  FAIL: {fail_n}")
        lines.append(f"  SKIP: {skip_n}")

        if fail_n + skip_n == 0:
            return "\n".join(lines)

        by_category = self.failures_by_category()
        if by_category:
            parts = ", ".join(f"{cat.value}={n}" for cat, n in sorted(by_category.items(), key=lambda kv: kv[0].value))
            lines.append(f"  by category: {parts}")

        lines.append("")
        lines.append("Details:")
        for rec in self._records:
            if rec.status == StepStatus.FAILED:
                cat = rec.category.value if rec.category else "-"
                lines.append(f"  - FAIL {rec.step_name} [{cat}]: {rec.exc_type}: {rec.message}")
            else:
                lines.append(f"  - SKIP {rec.step_name}: {rec.message}")

        lines.append("")
        lines.append("Artifacts:")
        lines.append(f"  - {str(self.cfg.log_dir / f'run_{self._run_id}.log')}")
        if self.cfg.write_jsonl:
            lines.append(f"  - {str(self.cfg.log_dir / f'events_{self._run_id}.jsonl')}")

        return "\n".join(lines)

    def print_summary(self) -> None:
        """
        Print summary to console, using Rich if available.

        Usage example
        -------------
            reporter.print_summary()
        """
        text = self.render_summary()
        try:
            from rich.console import Console  # type: ignore
        except ImportError:
            print(text)
            return
        Console().print(text, markup=False, highlight=False)

    def exit_code(self) -> int:
        """Return a conventional process exit code: 0 if success, else 1."""
        return 0 if not self.has_failures() else 1
