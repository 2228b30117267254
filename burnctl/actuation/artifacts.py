"""
Artifact writing for burnctl burns.

Artifacts let a burn be inspected after the fact (summary, plots) without
re-running it against live telemetry.

Artifact files produced:
- burn.json: Burn summary (strategy, outcome, target, iterations, timing)
- samples.jsonl: One BurnSample per line, only when samples were recorded

Example artifact directory structure:
```
artifacts/burns/20240115_120000_deorbit/
├── burn.json       # Burn summary
└── samples.jsonl   # Per-iteration samples
```
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path

from burnctl.actuation.burn import BurnOutcome, BurnResult, BurnSample

BURN_FILE = "burn.json"
SAMPLES_FILE = "samples.jsonl"


def write_burn_artifacts(*, out_path: Path | str, result: BurnResult) -> Path:
    """
    Write burn artifacts to disk.

    Args:
        out_path: Output directory. Created (with parents) if missing.
        result: Finished burn.

    Returns:
        Path of the written burn.json.
    """
    out_path = Path(out_path)
    out_path.mkdir(parents=True, exist_ok=True)

    _write_burn_json(out_path, result)
    if result.samples:
        _write_samples_jsonl(out_path, result.samples)

    return out_path / BURN_FILE


def _write_burn_json(out_path: Path, result: BurnResult) -> None:
    """
    Write burn.json artifact.

    Schema:
    {
        "burn": {
            "strategy": str ("taper" | "pid"),
            "outcome": str ("target_reached" | "already_at_target" | "cancelled"),
            "target": float,
            "iterations": int,
            "final_value": float | null,
            "start_time": str (ISO 8601),
            "finish_time": str (ISO 8601),
            "sample_count": int
        }
    }
    """
    payload = {
        "burn": {
            "strategy": result.strategy,
            "outcome": result.outcome.value,
            "target": result.target,
            "iterations": result.iterations,
            "final_value": result.final_value,
            "start_time": result.start_time,
            "finish_time": result.finish_time,
            "sample_count": len(result.samples),
        },
    }
    burn_path = out_path / BURN_FILE
    burn_path.write_text(
        json.dumps(payload, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )


def _write_samples_jsonl(out_path: Path, samples: list[BurnSample]) -> None:
    """
    Write samples.jsonl artifact.

    Each line schema:
    {"command": float, "elapsed_s": float, "iteration": int, "measured": float, "written": bool}
    """
    samples_path = out_path / SAMPLES_FILE
    with samples_path.open("w", encoding="utf-8") as f:
        for sample in samples:
            json.dump(asdict(sample), f, sort_keys=True)
            f.write("\n")


def load_burn_result(out_path: Path | str) -> BurnResult:
    """
    Read artifacts written by write_burn_artifacts back into a BurnResult.

    Raises:
        FileNotFoundError: If burn.json is missing.
    """
    out_path = Path(out_path)
    data = json.loads((out_path / BURN_FILE).read_text(encoding="utf-8"))
    burn = data["burn"]

    samples: list[BurnSample] = []
    samples_path = out_path / SAMPLES_FILE
    if samples_path.exists():
        with samples_path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    samples.append(BurnSample(**json.loads(line)))

    return BurnResult(
        strategy=burn["strategy"],
        outcome=BurnOutcome(burn["outcome"]),
        target=burn["target"],
        iterations=burn["iterations"],
        final_value=burn["final_value"],
        start_time=burn["start_time"],
        finish_time=burn["finish_time"],
        samples=samples,
    )
