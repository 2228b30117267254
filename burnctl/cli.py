"""
Command-line interface for burnctl.

Burns themselves run inside an application that owns the telemetry
connection; the CLI works on the artifacts those burns leave behind.

Usage:
    # Print a burn summary
    burnctl summary artifacts/burns/20240115_120000_deorbit

    # Render the burn trace (requires burnctl[plot])
    burnctl plot artifacts/burns/20240115_120000_deorbit --out deorbit.png

Entry points:
    - burnctl: Direct CLI command (from pyproject.toml)
    - python -m burnctl: Module execution
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from .actuation.artifacts import load_burn_result
from .logs import configure_logging

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser for the CLI.

    Returns:
        Configured ArgumentParser with all supported subcommands.
    """
    p = argparse.ArgumentParser(
        prog="burnctl",
        description="burnctl: inspect closed-loop burn artifacts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  burnctl summary artifacts/burns/deorbit
      Print outcome, iterations and final value of a burn

  burnctl plot artifacts/burns/deorbit --out deorbit.png
      Render measured value and throttle over time
""",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Send debug logging to the console",
    )
    p.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Write debug logging to this file when not verbose",
    )

    sub = p.add_subparsers(dest="command", required=True)

    summary = sub.add_parser("summary", help="Print a burn summary")
    summary.add_argument("run_dir", type=str, help="Burn artifact directory")

    plot = sub.add_parser("plot", help="Plot a recorded burn")
    plot.add_argument("run_dir", type=str, help="Burn artifact directory")
    plot.add_argument(
        "--out",
        type=str,
        default=None,
        help="Output image path (default: <run_dir>/burn_plot.png)",
    )
    plot.add_argument(
        "--show",
        action="store_true",
        help="Display the plot interactively",
    )

    return p


def _summary(run_dir: str) -> int:
    result = load_burn_result(run_dir)
    written = sum(1 for s in result.samples if s.written)
    print(f"{result.strategy} burn: ", end="")
    print(f"outcome={result.outcome.value} ", end="")
    print(f"iterations={result.iterations} ", end="")
    print(f"target={result.target:g} ", end="")
    final = "n/a" if result.final_value is None else f"{result.final_value:g}"
    print(f"final={final}", end="")
    if result.samples:
        print(f" samples={len(result.samples)} written={written}", end="")
    print()
    return 0


def _plot(run_dir: str, out: str | None, show: bool) -> int:
    from .actuation.plotting import plot_from_artifacts

    try:
        saved = plot_from_artifacts(run_dir, output_path=out, show=show)
    except (RuntimeError, ValueError) as e:
        print(f"Plot failed: {e}", file=sys.stderr)
        return 1
    if saved is not None:
        print(f"Plot saved to: {saved}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code: 0 for success, non-zero for errors
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=args.verbose, log_file=args.log_file)

    try:
        if args.command == "summary":
            return _summary(args.run_dir)
        return _plot(args.run_dir, args.out, args.show)
    except FileNotFoundError as e:
        logger.error("Missing burn artifacts: %s", e)
        print(f"No burn artifacts found: {e}", file=sys.stderr)
        return 1
    except (json.JSONDecodeError, KeyError) as e:
        logger.error("Unreadable burn artifacts in %s: %r", args.run_dir, e)
        print(f"Invalid burn artifacts in {args.run_dir}: {e!r}", file=sys.stderr)
        return 1


# Allow module execution: python -m burnctl
if __name__ == "__main__":
    sys.exit(main())
