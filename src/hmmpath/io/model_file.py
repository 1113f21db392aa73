"""Load and save model descriptions (JSON or YAML)."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from hmmpath.core.identity import NamedObservation, NamedState
from hmmpath.decode.model import HMMModel

SUPPORTED_SUFFIXES: tuple[str, ...] = (".json", ".yaml", ".yml")
REQUIRED_KEYS: tuple[str, ...] = ("states", "observations")


class ModelFileError(ValueError):
    """Raised when a model file cannot be read or has the wrong structure."""


@dataclass(frozen=True)
class ModelFile:
    """
    A model loaded from disk.

    Parameters
    ----------
    path
        Source file.
    model
        Populated model of named states/observations.
    log_space
        Whether the file declares log-probabilities (``log_space: true``).
    """

    path: Path
    model: HMMModel[NamedState, NamedObservation]
    log_space: bool = False


def read_mapping(path: Path) -> Dict[str, Any]:
    """Read a JSON/YAML file into a dict."""

    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ModelFileError(f"{path}: unsupported model file type '{suffix}'. Expected one of {SUPPORTED_SUFFIXES}.")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ModelFileError(f"{path}: cannot read model file ({exc}).") from exc

    try:
        data = json.loads(text) if suffix == ".json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ModelFileError(f"{path}: cannot parse model file ({exc}).") from exc

    if not isinstance(data, dict):
        raise ModelFileError(f"{path}: top level must be a mapping, got {type(data).__name__}.")
    return data


def _validate_layout(path: Path, data: Mapping[str, Any]) -> None:
    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        raise ModelFileError(f"{path}: missing required key(s): {', '.join(missing)}.")
    for key in REQUIRED_KEYS:
        entries = data[key]
        if not isinstance(entries, list):
            raise ModelFileError(f"{path}: '{key}' must be a list of {{id, name}} entries.")
        for i, entry in enumerate(entries):
            if not isinstance(entry, dict) or "id" not in entry or "name" not in entry:
                raise ModelFileError(f"{path}: {key}[{i}] must be a mapping with 'id' and 'name'.")
    log_space = data.get("log_space", False)
    if not isinstance(log_space, bool):
        raise ModelFileError(f"{path}: 'log_space' must be true or false, got {log_space!r}.")
    for key in ("start", "emission", "transition"):
        if data.get(key) is not None and not isinstance(data[key], dict):
            raise ModelFileError(f"{path}: '{key}' must be a mapping.")
    for key in ("emission", "transition"):
        for name, row in (data.get(key) or {}).items():
            if not isinstance(row, dict):
                raise ModelFileError(f"{path}: {key}.{name} must be a mapping.")


def load_model(path: Path) -> ModelFile:
    """
    Load a model file.

    Layout
    ------
        log_space: false
        states: [{id: 1, name: Healthy}, {id: 2, name: Fever}]
        observations: [{id: 1, name: normal}, {id: 2, name: cold}]
        start: {Healthy: 0.6, Fever: 0.4}
        emission: {Healthy: {normal: 0.5, cold: 0.4}, Fever: {normal: 0.1, cold: 0.3}}
        transition: {Healthy: {Healthy: 0.7, Fever: 0.3}, Fever: {Healthy: 0.4, Fever: 0.6}}
    """

    path = Path(path)
    data = read_mapping(path)
    _validate_layout(path, data)
    try:
        model = HMMModel.from_mapping(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise ModelFileError(f"{path}: {exc}") from exc
    return ModelFile(path=path, model=model, log_space=data.get("log_space", False))


def save_model(model: HMMModel, path: Path, *, log_space: bool = False) -> None:
    """Write a named-state model to JSON or YAML (by suffix)."""

    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ModelFileError(f"{path}: unsupported model file type '{suffix}'.")
    data: Dict[str, Any] = {"log_space": log_space, **model.to_mapping()}
    path.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".json":
        path.write_text(json.dumps(data, indent=2))
    else:
        path.write_text(yaml.safe_dump(data, sort_keys=False))
