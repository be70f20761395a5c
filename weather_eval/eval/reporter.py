"""
Report generation for experiment results.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
import structlog

from .schemas import RunReport

logger = structlog.get_logger(__name__)


def format_report(report: RunReport) -> str:
    """Human-readable summary of a run report."""
    lines = [
        f"Experiment: {report.name}",
        f"Dataset: {report.dataset_name} ({len(report.item_results)} items)",
        f"Run ID: {report.run_id}",
    ]
    if report.description:
        lines.append(f"Description: {report.description}")
    lines.append("")

    for result in report.item_results:
        lines.append(f"[{result.index + 1}] input: {json.dumps(result.item.input, ensure_ascii=False)}")
        if result.error:
            lines.append(f"    error: {result.error}")
        for score in result.evaluations:
            lines.append(f"    {score.name}: {score.value:.3f}  {score.comment}")
    lines.append("")

    lines.append("Run scores:")
    if not report.run_scores:
        lines.append("    (none)")
    for score in report.run_scores:
        lines.append(f"    {score.name}: {score.value:.3f}  {score.comment}")
    return "\n".join(lines)


def _result_rows(report: RunReport) -> List[Dict[str, Any]]:
    rows = []
    for r in report.item_results:
        row = {
            "index": r.index,
            "id": r.item.id or "",
            "input": json.dumps(r.item.input, ensure_ascii=False),
            "error": r.error or "",
            "duration_ms": round(r.duration_ms, 2),
        }
        for score in r.evaluations:
            row[score.name] = score.value
        rows.append(row)
    return rows


def save_report(
    report: RunReport,
    out_dir: str | Path,
    run_id: Optional[str] = None,
) -> Path:
    """
    Save a run report to disk (JSON, CSV and Markdown summary).

    Args:
        report: RunReport to save
        out_dir: Output directory
        run_id: Optional run ID for directory naming; defaults to the report's

    Returns:
        Path to the created run directory
    """
    run_dir = Path(out_dir) / f"run_{run_id or report.run_id}"
    run_dir.mkdir(parents=True, exist_ok=True)

    (run_dir / "report.json").write_text(report.model_dump_json(indent=2), encoding="utf-8")

    rows = _result_rows(report)
    if rows:
        pd.DataFrame(rows).to_csv(run_dir / "results.csv", index=False)

    _write_markdown_summary(report, run_dir / "summary.md")
    logger.info("report_saved", path=str(run_dir), items=len(rows))
    return run_dir


def _write_markdown_summary(report: RunReport, path: Path) -> None:
    """Write a Markdown summary of the run report."""
    with open(path, "w", encoding="utf-8") as f:
        f.write(f"# Experiment Report: {report.name}\n\n")
        f.write(f"Dataset: `{report.dataset_name}` ({len(report.item_results)} items)\n\n")

        f.write("## Run Scores\n\n")
        f.write("| Score | Value | Comment |\n")
        f.write("|-------|-------|---------|\n")
        for score in report.run_scores:
            f.write(f"| {score.name} | {score.value:.3f} | {score.comment} |\n")
        f.write("\n")

        failed = [r for r in report.item_results if r.error]
        if failed:
            f.write("## Failed Items\n\n")
            for r in failed:
                f.write(f"- #{r.index + 1} `{json.dumps(r.item.input, ensure_ascii=False)}`: {r.error}\n")
            f.write("\n")

        if report.metadata:
            f.write("## Metadata\n\n")
            for key, value in report.metadata.items():
                f.write(f"- **{key}:** {value}\n")
