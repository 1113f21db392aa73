"""Artifact writing utilities."""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Dict

import numpy as np

from hmmpath.core.identity import identity_of
from hmmpath.decode.decoder import ViterbiPath
from hmmpath.decode.trellis import Trellis


def _label(value: Any) -> str:
    return str(getattr(value, "name", value))


def _json_float(value: float) -> float | str:
    # Keep -inf readable by json.loads in other languages.
    return value if math.isfinite(value) else str(value)


def result_to_dict(result: ViterbiPath, *, log_space: bool = False) -> Dict[str, Any]:
    return {
        "probability": _json_float(result.probability),
        "log_space": log_space,
        "path": [{"id": identity_of(s), "name": _label(s)} for s in result.path],
        "n_steps": len(result.path),
    }


def save_json(data: Any, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))


def save_result(result: ViterbiPath, path: Path, *, log_space: bool = False) -> Path:
    """Write the decoded path as JSON."""

    save_json(result_to_dict(result, log_space=log_space), path)
    return path


def save_trellis(trellis: Trellis, path: Path) -> Path:
    """Write trellis arrays plus state metadata to a compressed ``.npz``."""

    meta = {
        "log_space": trellis.log_space,
        "states": [{"id": identity_of(s), "name": _label(s)} for s in trellis.states],
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(
        path,
        scores=trellis.scores,
        backpointers=trellis.backpointers,
        metadata=json.dumps(meta),
    )
    return path
