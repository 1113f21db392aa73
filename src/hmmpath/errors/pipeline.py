from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from .reporter import ErrorReporter
from .guards import step


@dataclass(frozen=True)
class _StepDef:
    name: str
    fn: Callable[..., Any]
    deps: tuple[str, ...]
    context: Optional[Mapping[str, Any]]


class Pipeline:
    """
    Dependency-aware step runner for batches of decodes.

    Rules
    -----
    - Steps run in registration order, except that a step always runs after its
      dependencies. The whole order is fixed before the first step runs.
    - A step's callable receives its dependencies' results as positional
      arguments, in the order the dependencies were declared.
    - If any dependency FAILED or was SKIPPED, the step is SKIPPED.
    - In run mode, independent steps keep running after a failure.
    - In debug mode, the first failure raises.

    Usage example
    -------------
        pipe = Pipeline(reporter)

        pipe.add("load:weather", lambda: load_model(path), context={"model": str(path)})
        pipe.add("decode:weather", lambda loaded: eval_path(loaded.model), deps=["load:weather"])
        pipe.add("export:weather", lambda result: save_result(result, out), deps=["decode:weather"])

        results = pipe.run()
        reporter.print_summary()
    """

    def __init__(self, reporter: ErrorReporter) -> None:
        self._reporter = reporter
        self._steps: Dict[str, _StepDef] = {}

    def add(
        self,
        name: str,
        fn: Callable[..., Any],
        *,
        deps: Optional[List[str]] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Register a named step with optional dependencies."""
        if name in self._steps:
            raise ValueError(f"Duplicate step name: {name}")
        self._steps[name] = _StepDef(name=name, fn=fn, deps=tuple(deps or []), context=context)

    def order(self) -> List[str]:
        """
        Return the execution order.

        Raises
        ------
        RuntimeError
            If a dependency is never registered or the steps form a cycle.
        """
        for sdef in self._steps.values():
            missing = [dep for dep in sdef.deps if dep not in self._steps]
            if missing:
                raise RuntimeError(f"Step '{sdef.name}' depends on undefined step(s): {', '.join(missing)}")

        ordered: List[str] = []
        placed: set[str] = set()
        pending = list(self._steps)
        while pending:
            ready = next((n for n in pending if all(dep in placed for dep in self._steps[n].deps)), None)
            if ready is None:
                raise RuntimeError(f"Pipeline has a dependency cycle among: {', '.join(pending)}")
            ordered.append(ready)
            placed.add(ready)
            pending.remove(ready)
        return ordered

    def _max_failures_reached(self) -> bool:
        cfg = self._reporter.cfg
        if cfg.mode != "run" or cfg.max_failures is None:
            return False
        return self._reporter.failures_count() >= cfg.max_failures

    def run(self) -> Dict[str, Any]:
        """
        Execute every step once.

        Returns
        -------
        results
            Mapping from step name to return value (only for steps that ran successfully).

        Notes
        -----
        Once cfg.max_failures failures are recorded, every step not yet run is
        marked SKIPPED with ``caused_by="max_failures"``.
        """
        results: Dict[str, Any] = {}
        order = self.order()

        for i, name in enumerate(order):
            if self._max_failures_reached():
                for rest in order[i:]:
                    self._reporter.mark_skipped(
                        step_name=rest, caused_by="max_failures", context=self._steps[rest].context
                    )
                break

            sdef = self._steps[name]
            bad_dep = next((dep for dep in sdef.deps if not self._reporter.ok(dep)), None)
            if bad_dep is not None:
                self._reporter.mark_skipped(step_name=name, caused_by=bad_dep, context=sdef.context)
                continue

            with step(name, self._reporter, context=sdef.context):
                results[name] = sdef.fn(*[results[dep] for dep in sdef.deps])

        return results
