"""`hmmpath check` command implementation."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from hmmpath.decode.decoder import LINEAR, LOG, check_transitions, compile_tables
from hmmpath.decode.errors import ModelInputError
from hmmpath.io.model_file import ModelFileError, load_model


def add_subparser(subparsers: argparse._SubParsersAction) -> None:
    """Register the `check` command."""
    parser = subparsers.add_parser("check", help="Validate a model file in linear and log-space arithmetic.")
    parser.add_argument("model", help="Model file (.json, .yaml, .yml).")
    parser.set_defaults(command="check")


def run(args: argparse.Namespace) -> int:
    """
    Execute the `check` command; exit 0 when the model is valid in its declared domain.

    Every stored value is checked, including transitions a decode of this
    observation sequence would never read.
    """
    try:
        loaded = load_model(Path(args.model))
    except ModelFileError as error:
        print(f"error: {error}", file=sys.stderr)
        return 2

    model = loaded.model
    print(f"{loaded.path}: {model.num_states()} states, {model.num_observations()} observations")

    declared_ok = True
    for domain in (LINEAR, LOG):
        try:
            check_transitions(compile_tables(model, domain), domain)
        except ModelInputError as error:
            print(f"  {domain.name}: invalid ({error})")
            if domain.log_space == loaded.log_space:
                declared_ok = False
        else:
            print(f"  {domain.name}: ok")

    return 0 if declared_ok else 1
