"""
errors subpackage: error handling + logging for batch decoding runs.

Key primitives
--------------
- ErrorHandlingConfig: global config (mode, log paths, JSONL, etc.)
- configure_logging(): console + file logging for the ``hmmpath`` logger, optional JSONL events
- ErrorReporter: captures failures/skips (tagged by failure tier) and renders end-of-run report
- step(): context manager to wrap a named step
- Pipeline: dependency-aware runner that skips meaningless downstream steps
"""

from .config import ConfigError, ErrorHandlingConfig
from .logging import configure_logging, JsonlEventLogger
from .reporter import ErrorReporter
from .guards import step
from .pipeline import Pipeline
from .types import FailureCategory, classify_exception

__all__ = [
    "ConfigError",
    "ErrorHandlingConfig",
    "JsonlEventLogger",
    "configure_logging",
    "ErrorReporter",
    "FailureCategory",
    "classify_exception",
    "step",
    "Pipeline",
]
