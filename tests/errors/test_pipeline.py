from pathlib import Path
import logging
import pytest

from hmmpath.core.identity import NamedObservation, NamedState
from hmmpath.decode.decoder import eval_path
from hmmpath.decode.model import build_model
from hmmpath.errors import ErrorHandlingConfig, configure_logging, ErrorReporter, Pipeline
from hmmpath.errors.types import FailureCategory, StepStatus


def _make_reporter(*, tmp_path: Path, mode: str, max_failures: int | None = None) -> ErrorReporter:
    cfg = ErrorHandlingConfig(
        mode=mode,  # type: ignore[arg-type]
        log_dir=tmp_path / "logs",
        run_id="testrun",
        write_jsonl=False,
        max_failures=max_failures,
        console_level=logging.CRITICAL,  # keep test output quiet
    )
    logger, event_logger = configure_logging(cfg=cfg)
    return ErrorReporter(cfg=cfg, logger=logger, event_logger=event_logger)


def test_pipeline_happy_path_runs_all_and_returns_results(tmp_path: Path) -> None:
    reporter = _make_reporter(tmp_path=tmp_path, mode="run")
    pipe = Pipeline(reporter)

    pipe.add("A", lambda: 1)
    pipe.add("B", lambda a: a + 1, deps=["A"])
    pipe.add("C", lambda b: b + 1, deps=["B"])

    results = pipe.run()

    assert results == {"A": 1, "B": 2, "C": 3}
    assert all(reporter.status(n) == StepStatus.OK for n in "ABC")
    assert reporter.has_failures() is False


def test_pipeline_passes_dependency_results_in_declared_order(tmp_path: Path) -> None:
    reporter = _make_reporter(tmp_path=tmp_path, mode="run")
    pipe = Pipeline(reporter)

    pipe.add("x", lambda: "x")
    pipe.add("y", lambda: "y")
    pipe.add("xy", lambda second, first: second + first, deps=["y", "x"])

    assert pipe.run()["xy"] == "yx"


def test_pipeline_decodes_models_and_skips_after_unreachable_sequence(tmp_path: Path) -> None:
    reporter = _make_reporter(tmp_path=tmp_path, mode="run")
    pipe = Pipeline(reporter)

    a = NamedState(1, "A")
    x, y = NamedObservation(1, "x"), NamedObservation(2, "y")
    good = build_model([a], [x, x], start={a: 1.0}, emission={(a, x): 0.5}, transition={(a, a): 1.0})
    broken = build_model([a], [x, y], start={a: 1.0}, emission={(a, x): 0.5}, transition={(a, a): 1.0})

    for name, model in (("good", good), ("broken", broken)):
        pipe.add(f"load:{name}", lambda model=model: model)
        pipe.add(f"decode:{name}", eval_path, deps=[f"load:{name}"])
        pipe.add(f"export:{name}", lambda result: len(result.path), deps=[f"decode:{name}"])

    results = pipe.run()

    assert results["export:good"] == 2
    assert results["decode:good"].probability == 0.25
    assert reporter.failed("decode:broken")
    assert reporter.skipped("export:broken")
    assert reporter.failures_by_category() == {FailureCategory.UNREACHABLE: 1}


def test_pipeline_failure_skips_dependents_but_runs_independent(tmp_path: Path) -> None:
    reporter = _make_reporter(tmp_path=tmp_path, mode="run")
    pipe = Pipeline(reporter)

    ran: list[str] = []

    def a_fail() -> int:
        ran.append("A")
        raise ValueError("nope")

    def b_should_skip(_: int) -> int:
        ran.append("B")
        return 2

    def c_independent_ok() -> int:
        ran.append("C")
        return 3

    pipe.add("A", a_fail)
    pipe.add("B", b_should_skip, deps=["A"])
    pipe.add("C", c_independent_ok)

    results = pipe.run()

    assert results == {"C": 3}
    assert reporter.status("A") == StepStatus.FAILED
    assert reporter.status("B") == StepStatus.SKIPPED
    assert reporter.status("C") == StepStatus.OK
    assert ran == ["A", "C"]  # registration order


def test_pipeline_debug_mode_raises_on_failure(tmp_path: Path) -> None:
    reporter = _make_reporter(tmp_path=tmp_path, mode="debug")
    pipe = Pipeline(reporter)

    def boom() -> None:
        raise RuntimeError("stop")

    pipe.add("A", boom)

    with pytest.raises(RuntimeError, match="stop"):
        pipe.run()

    assert reporter.status("A") == StepStatus.FAILED


def test_pipeline_duplicate_step_name_raises(tmp_path: Path) -> None:
    pipe = Pipeline(_make_reporter(tmp_path=tmp_path, mode="run"))
    pipe.add("A", lambda: 1)
    with pytest.raises(ValueError, match="Duplicate step name"):
        pipe.add("A", lambda: 2)


def test_pipeline_cycle_detection_raises(tmp_path: Path) -> None:
    reporter = _make_reporter(tmp_path=tmp_path, mode="run")
    pipe = Pipeline(reporter)

    pipe.add("A", lambda b: 1, deps=["B"])
    pipe.add("B", lambda a: 2, deps=["A"])

    with pytest.raises(RuntimeError, match="dependency cycle"):
        pipe.run()


def test_pipeline_undefined_dependency_raises(tmp_path: Path) -> None:
    reporter = _make_reporter(tmp_path=tmp_path, mode="run")
    pipe = Pipeline(reporter)

    pipe.add("A", lambda b: 1, deps=["B"])

    with pytest.raises(RuntimeError, match="undefined step"):
        pipe.run()


def test_pipeline_max_failures_stops_scheduling_and_marks_remaining_skipped(tmp_path: Path) -> None:
    reporter = _make_reporter(tmp_path=tmp_path, mode="run", max_failures=1)
    pipe = Pipeline(reporter)

    ran: list[str] = []

    def a_fail() -> None:
        ran.append("A_fail")
        raise ValueError("first")

    def b_ok() -> str:
        ran.append("B_ok")
        return "ok"

    pipe.add("A_fail", a_fail)
    pipe.add("B_ok", b_ok)
    pipe.add("C_ok", b_ok)

    results = pipe.run()

    assert ran == ["A_fail"]
    assert results == {}
    assert reporter.status("B_ok") == StepStatus.SKIPPED
    assert reporter.status("C_ok") == StepStatus.SKIPPED
    assert reporter.failures_count() == 1


def test_pipeline_order_follows_registration_and_dependencies(tmp_path: Path) -> None:
    pipe = Pipeline(_make_reporter(tmp_path=tmp_path, mode="run"))

    pipe.add("export:z", lambda r: r, deps=["decode:z"])
    pipe.add("load:z", lambda: "model")
    pipe.add("decode:z", lambda m: m, deps=["load:z"])
    pipe.add("load:a", lambda: "model")

    assert pipe.order() == ["load:z", "decode:z", "export:z", "load:a"]
