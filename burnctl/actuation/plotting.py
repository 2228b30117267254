"""
Plotting utilities for burn results.

Plots can be generated from a BurnResult directly or from an artifact
directory written by write_burn_artifacts.

Requires matplotlib: pip install burnctl[plot]
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .burn import BurnResult

logger = logging.getLogger(__name__)


def check_matplotlib_available() -> bool:
    """Check if matplotlib is available."""
    try:
        import matplotlib  # noqa: F401
        return True
    except ImportError:
        return False


def plot_burn(
    result: "BurnResult",
    output_path: Path | str | None = None,
    show: bool = False,
    title: str | None = None,
) -> Path | None:
    """
    Generate a two-panel plot of a recorded burn.

    Panels:
    1. Measured value against the target
    2. Commanded throttle, with the iterations that were written marked

    Args:
        result: BurnResult recorded with record=True.
        output_path: Where to save the figure. If None and show=False,
                     saves to 'burn_plot.png'.
        show: If True, display the plot interactively.
        title: Optional figure title.

    Returns:
        Path of the saved figure, or None when only shown.

    Raises:
        RuntimeError: If matplotlib is not installed.
        ValueError: If the result holds no samples.
    """
    if not check_matplotlib_available():
        raise RuntimeError(
            "matplotlib not installed. Install with: pip install burnctl[plot]"
        )

    import matplotlib
    if not show:
        matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    if not result.samples:
        raise ValueError("No samples in burn result (run the burn with record=True)")

    elapsed = [s.elapsed_s for s in result.samples]
    measured = [s.measured for s in result.samples]
    commands = [s.command for s in result.samples]
    written_t = [s.elapsed_s for s in result.samples if s.written]
    written_v = [s.command for s in result.samples if s.written]

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(10, 5), sharex=True)

    # Panel 1: Measured value and target
    ax1.plot(elapsed, measured, "b-", linewidth=1.5, label="Measured")
    ax1.axhline(y=result.target, color="black", linestyle=":", linewidth=1.5,
                label=f"Target ({result.target:g})")
    ax1.set_ylabel("Value")
    ax1.grid(True, alpha=0.3)
    ax1.legend(loc="upper right")

    # Panel 2: Throttle
    ax2.step(elapsed, commands, where="post", color="tab:orange", linewidth=1.5,
             label="Command")
    ax2.plot(written_t, written_v, "o", color="tab:green", markersize=3,
             label="Written")
    ax2.set_ylabel("Throttle")
    ax2.set_ylim(-0.05, 1.05)
    ax2.set_xlabel("Elapsed (s)")
    ax2.grid(True, alpha=0.3)
    ax2.legend(loc="upper right")

    if title:
        fig.suptitle(title, fontsize=14, fontweight="bold")
    else:
        fig.suptitle(
            f"{result.strategy.upper()} burn: {result.outcome.value} "
            f"({result.iterations} iterations)",
            fontsize=14,
            fontweight="bold",
        )

    plt.tight_layout()

    saved: Path | None = None
    if output_path:
        saved = Path(output_path)
    elif not show:
        saved = Path("burn_plot.png")
    if saved is not None:
        plt.savefig(saved, dpi=150, bbox_inches="tight")
        logger.info("Plot saved to: %s", saved)

    if show:
        plt.show()

    plt.close(fig)
    return saved


def plot_from_artifacts(
    artifact_dir: Path | str,
    output_path: Path | str | None = None,
    show: bool = False,
) -> Path | None:
    """
    Generate a burn plot from artifact files on disk.

    Args:
        artifact_dir: Directory holding burn.json and samples.jsonl.
        output_path: Where to save the figure. If None, saves to
                     artifact_dir/burn_plot.png (unless only showing).
        show: If True, display the plot interactively.

    Raises:
        RuntimeError: If matplotlib is not installed.
        FileNotFoundError: If burn.json is missing.
    """
    from .artifacts import load_burn_result

    artifact_dir = Path(artifact_dir)
    result = load_burn_result(artifact_dir)
    if output_path is None and not show:
        output_path = artifact_dir / "burn_plot.png"
    return plot_burn(result, output_path=output_path, show=show)
