"""Text dump of a trellis for debugging."""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence

import numpy as np

from hmmpath.decode.trellis import NO_PREDECESSOR, Trellis

ABSENT_CELL = "."


def render_trellis(
    trellis: Trellis,
    *,
    observations: Optional[Sequence[Any]] = None,
    labeler: Callable[[Any], str] = str,
    precision: int = 6,
) -> str:
    """
    Render the trellis as a fixed-width table.

    One row per step, one column per state. A cell reads ``score<-pred``;
    step 0 cells carry no predecessor and unreachable cells show ``.``.

    Usage example
    -------------
        print(render_trellis(result.trellis, observations=model.observations))
    """

    labels = [labeler(s) for s in trellis.states]
    header = ["t", "obs"] + labels
    rows: list[list[str]] = []
    for t in range(trellis.n_steps):
        obs = labeler(observations[t]) if observations is not None and t < len(observations) else ""
        cells = [str(t), obs]
        for j in range(trellis.n_states):
            score = trellis.scores[t, j]
            if np.isnan(score):
                cells.append(ABSENT_CELL)
                continue
            text = f"{score:.{precision}g}"
            prev = int(trellis.backpointers[t, j])
            if prev != NO_PREDECESSOR:
                text += f"<-{labels[prev]}"
            cells.append(text)
        rows.append(cells)

    widths = [max(len(r[i]) for r in [header] + rows) for i in range(len(header))]
    lines = ["  ".join(cell.ljust(w) for cell, w in zip(header, widths)).rstrip()]
    lines.append("  ".join("-" * w for w in widths))
    for r in rows:
        lines.append("  ".join(cell.ljust(w) for cell, w in zip(r, widths)).rstrip())
    return "\n".join(lines)


def print_trellis(trellis: Trellis, **kwargs: Any) -> None:
    """Print :func:`render_trellis` output, using Rich if available."""

    text = render_trellis(trellis, **kwargs)
    try:
        from rich.console import Console  # type: ignore
    except ImportError:
        print(text)
        return
    Console().print(text, markup=False, highlight=False)
