"""`hmmpath batch` command implementation."""

from __future__ import annotations

import argparse
import dataclasses
from pathlib import Path
from typing import Any, Dict, List, Optional

from hmmpath.cli.commands.decode import add_log_space_flags
from hmmpath.decode.decoder import ViterbiPath, decode
from hmmpath.errors import ConfigError, ErrorHandlingConfig, ErrorReporter, Pipeline, configure_logging
from hmmpath.errors.config import load_config, resolve_log_space, resolve_out_dir
from hmmpath.io import artifacts
from hmmpath.io.model_file import SUPPORTED_SUFFIXES, ModelFile, load_model

ENV_PREFIX = "HMMPATH_"


def add_subparser(subparsers: argparse._SubParsersAction) -> None:
    """Register the `batch` command."""
    parser = subparsers.add_parser("batch", help="Decode many model files, continuing past failures.")
    parser.add_argument("models", nargs="+", help="Model files or directories containing them.")
    add_log_space_flags(parser)
    parser.add_argument("--out-dir", default=None, help="Output directory for decoded paths.")
    parser.add_argument("--log-dir", default=None, help="Directory for run logs.")
    parser.add_argument("--mode", choices=("debug", "run"), default=None,
                        help="debug: stop at first failure; run: record and continue.")
    parser.add_argument("--max-failures", type=int, default=None)
    parser.set_defaults(command="batch")


def collect_model_files(entries: List[str]) -> List[Path]:
    """Expand directories to the model files they contain (sorted)."""
    files: List[Path] = []
    for entry in entries:
        path = Path(entry)
        if path.is_dir():
            files.extend(sorted(p for p in path.iterdir() if p.suffix.lower() in SUPPORTED_SUFFIXES))
        else:
            files.append(path)
    return files


def _error_config(args: argparse.Namespace) -> ErrorHandlingConfig:
    cfg = ErrorHandlingConfig.from_env(default=ErrorHandlingConfig(env_prefix=ENV_PREFIX))
    overrides: Dict[str, Any] = {"run_id": cfg.resolved_run_id()}
    if args.mode is not None:
        overrides["mode"] = args.mode
    if args.log_dir is not None:
        overrides["log_dir"] = Path(args.log_dir)
    if args.max_failures is not None:
        overrides["max_failures"] = args.max_failures
    return dataclasses.replace(cfg, **overrides)


def build_pipeline(
    files: List[Path],
    reporter: ErrorReporter,
    *,
    out_dir: Path,
    log_space: Optional[bool],
) -> Pipeline:
    """Register load -> decode -> export steps for every model file."""

    pipe = Pipeline(reporter)

    for path in files:
        stem = path.stem
        context = {"model": str(path)}

        def _decode(loaded: ModelFile) -> tuple[ViterbiPath, bool]:
            use_log = loaded.log_space if log_space is None else log_space
            return decode(loaded.model, log_space=use_log), use_log

        def _export(decoded: tuple[ViterbiPath, bool], stem: str = stem) -> Path:
            result, use_log = decoded
            return artifacts.save_result(result, out_dir / f"{stem}_path.json", log_space=use_log)

        pipe.add(f"load:{stem}", lambda path=path: load_model(path), context=context)
        pipe.add(f"decode:{stem}", _decode, deps=[f"load:{stem}"], context=context)
        pipe.add(f"export:{stem}", _export, deps=[f"decode:{stem}"], context=context)
    return pipe


def run(args: argparse.Namespace) -> int:
    """Execute the `batch` command."""
    config = load_config(Path.cwd())
    try:
        out_dir = resolve_out_dir(config, Path(args.out_dir) if args.out_dir else None)
    except ConfigError as error:
        raise ConfigError(f"hmmpath batch requires an output directory. {error}") from error
    log_space = resolve_log_space(config, args.log_space)

    cfg = _error_config(args)
    logger, event_logger = configure_logging(cfg=cfg)
    reporter = ErrorReporter(cfg=cfg, logger=logger, event_logger=event_logger)

    files = collect_model_files(list(args.models))
    stems = [p.stem for p in files]
    duplicates = sorted({s for s in stems if stems.count(s) > 1})
    if duplicates:
        raise ConfigError(f"Model files must have distinct names; duplicated: {', '.join(duplicates)}")

    logger.info("Decoding %d model file(s) into %s", len(files), out_dir)
    results = build_pipeline(files, reporter, out_dir=out_dir, log_space=log_space).run()

    for path in files:
        decoded = results.get(f"decode:{path.stem}")
        if decoded is None:
            continue
        result, _ = decoded
        logger.info(
            "%s: score=%r path=%s", path.name, result.probability, " ".join(str(s) for s in result.path)
        )

    reporter.print_summary()
    return reporter.exit_code()
