"""
Reporting helpers: turn tuning results into files and tables.
"""

import csv
import logging
import os
from typing import Any, Dict, Iterable, List

from tabulate import tabulate

from .analyzers.analyzer import PerformanceAnalyzer
from .models import BatchResult, TuningResult
from .utils import save_json_file, format_duration

logger = logging.getLogger(__name__)

CSV_FIELDS = [
    "function_id",
    "memory_size",
    "count",
    "success_count",
    "failure_count",
    "mean_duration_ms",
    "p50_duration_ms",
    "p95_duration_ms",
    "avg_billed_duration_ms",
    "cost_per_invocation",
    "monthly_cost",
    "recommended",
]


def generate_summary(result: TuningResult) -> Dict[str, Any]:
    """Key figures of a tuning result, with the comparison to the original size."""
    recommendation = PerformanceAnalyzer(result.objective).get_recommendation(result)
    best = result.recommendation

    return {
        "function_id": result.function_id,
        "objective": result.objective.value,
        "phase": result.phase.value,
        "original_memory": result.original_memory,
        "recommended_memory": result.recommended_memory,
        "mean_duration_ms": best.mean_duration_ms if best else None,
        "cost_per_invocation": best.cost_per_invocation if best else None,
        "monthly_cost": best.monthly_cost if best else None,
        "candidates_tested": len({m.memory_size for m in result.measurements}),
        "cost_change_percent": recommendation.cost_change_percent,
        "duration_change_percent": recommendation.duration_change_percent,
        "estimated_monthly_savings": recommendation.estimated_monthly_savings,
        "reasoning": recommendation.reasoning,
        "reason": result.reason,
        "restored": result.restored,
    }


def batch_to_dict(batch: BatchResult, include_raw: bool = False) -> Dict[str, Any]:
    return {
        "results": {fid: r.to_dict(include_raw) for fid, r in batch.results.items()},
        "summaries": [generate_summary(r) for r in batch.results.values()],
        "errors": {fid: f"{type(e).__name__}: {e}" for fid, e in batch.errors.items()},
        "restore_failures": {fid: str(e) for fid, e in batch.restore_failures.items()},
    }


def export_to_json(batch: BatchResult, filepath: str, include_raw: bool = False):
    """Save a batch run as JSON."""
    save_json_file(batch_to_dict(batch, include_raw), filepath)
    logger.info(f"JSON report saved to {filepath}")


def export_to_csv(results: Iterable[TuningResult], filepath: str):
    """Save every measurement of every result as CSV rows."""
    directory = os.path.dirname(filepath)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(filepath, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS, extrasaction="ignore")
        writer.writeheader()
        for result in results:
            for measurement in result.measurements:
                row = measurement.to_dict()
                row["recommended"] = measurement.memory_size == result.recommended_memory
                writer.writerow(row)

    logger.info(f"CSV report saved to {filepath}")


def format_measurements_table(result: TuningResult) -> str:
    """Table of every measurement of one session, in the order taken."""
    rows: List[List[Any]] = []
    for m in result.measurements:
        marker = "*" if m.memory_size == result.recommended_memory else ""
        rows.append(
            [
                f"{m.memory_size}MB{marker}",
                f"{m.success_count}/{m.count}",
                format_duration(m.mean_duration_ms),
                format_duration(m.p95_duration_ms),
                f"${m.cost_per_invocation:.9f}" if m.cost_per_invocation is not None else "-",
                f"${m.monthly_cost:.2f}" if m.monthly_cost is not None else "-",
                m.unusable_reason or "",
            ]
        )

    return tabulate(
        rows,
        headers=["Memory", "OK", "Mean", "P95", "Per invocation", "Per month", "Note"],
        tablefmt="simple",
    )


def format_summary_table(batch: BatchResult) -> str:
    """One row per function of a batch run."""
    rows = []
    for fid, result in batch.results.items():
        summary = generate_summary(result)
        rows.append(
            [
                fid,
                f"{summary['original_memory']}MB",
                f"{summary['recommended_memory']}MB" if summary["recommended_memory"] else "-",
                summary["phase"],
                format_duration(summary["mean_duration_ms"]),
                f"${summary['monthly_cost']:.2f}" if summary["monthly_cost"] is not None else "-",
                "yes" if summary["restored"] else "NO",
            ]
        )
    for fid, error in batch.errors.items():
        rows.append([fid, "-", "-", f"error: {type(error).__name__}", "-", "-", "-"])

    return tabulate(
        rows,
        headers=["Function", "Original", "Recommended", "Result", "Mean", "Per month", "Restored"],
        tablefmt="simple",
    )
