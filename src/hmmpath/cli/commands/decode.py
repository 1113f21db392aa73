"""`hmmpath decode` command implementation."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from hmmpath.decode.decoder import decode as run_decode
from hmmpath.decode.dump import print_trellis
from hmmpath.decode.errors import DecodeError
from hmmpath.decode.scoring import score_path
from hmmpath.errors.config import load_config, resolve_log_space
from hmmpath.io import artifacts
from hmmpath.io.model_file import ModelFileError, load_model

logger = logging.getLogger(__name__)


def add_log_space_flags(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--log-space", dest="log_space", action="store_true", default=None,
                       help="Treat probabilities as log-probabilities (<= 0).")
    group.add_argument("--linear", dest="log_space", action="store_false",
                       help="Treat probabilities as linear values in [0, 1].")


def add_subparser(subparsers: argparse._SubParsersAction) -> None:
    """Register the `decode` command."""
    parser = subparsers.add_parser("decode", help="Decode the most probable state path of one model file.")
    parser.add_argument("model", help="Model file (.json, .yaml, .yml).")
    add_log_space_flags(parser)
    parser.add_argument("--out", default=None, help="Write the decoded path as JSON.")
    parser.add_argument("--trellis-out", default=None, help="Write the trellis arrays as .npz.")
    parser.add_argument("--show-trellis", action="store_true", help="Print the trellis table.")
    parser.add_argument("--verify", action="store_true", help="Re-score the decoded path independently.")
    parser.set_defaults(command="decode")


def run(args: argparse.Namespace) -> int:
    """Execute the `decode` command."""
    config = load_config(Path.cwd())
    try:
        loaded = load_model(Path(args.model))
    except ModelFileError as error:
        print(f"error: {error}", file=sys.stderr)
        return 2

    log_space = resolve_log_space(config, args.log_space)
    if log_space is None:
        log_space = loaded.log_space

    try:
        result = run_decode(loaded.model, log_space=log_space)
    except DecodeError as error:
        print(f"error: {type(error).__name__}: {error}", file=sys.stderr)
        return 1

    label = "log-probability" if log_space else "probability"
    print(f"{label}: {result.probability!r}")
    print("path: " + " -> ".join(str(s) for s in result.path))

    if args.verify:
        rescored = score_path(loaded.model, result.path, log_space=log_space)
        if rescored != result.probability:
            print(f"error: verification mismatch: decoded {result.probability!r}, rescored {rescored!r}",
                  file=sys.stderr)
            return 1
        print("verified: ok")

    if args.show_trellis:
        print_trellis(result.trellis, observations=loaded.model.observations)
    if args.out:
        artifacts.save_result(result, Path(args.out), log_space=log_space)
        logger.info("Wrote %s", args.out)
    if args.trellis_out:
        artifacts.save_trellis(result.trellis, Path(args.trellis_out))
        logger.info("Wrote %s", args.trellis_out)
    return 0
