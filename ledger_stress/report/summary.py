"""End-of-run artifacts: JSON summary, static HTML report, stderr table."""

from __future__ import annotations

import html
import json
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TextIO

import structlog

from ledger_stress.runner import RunResult

logger = structlog.get_logger()

_STAT_KEYS = ("avg", "min", "max", "p95")


def build_summary(result: RunResult) -> dict[str, Any]:
    """Aggregate a finished run into the JSON-serialisable summary."""
    return {
        "endpoints": {
            endpoint: trend.to_dict() for endpoint, trend in result.metrics.summary().items()
        },
        "checks": {
            "passes": result.checks.total_passes,
            "fails": result.checks.total_fails,
            "by_scenario": result.checks.summary(),
        },
        "iterations": result.checks.iteration_summary(),
        "scenarios": {name: run.to_dict() for name, run in result.scenarios.items()},
        "started_at": result.started_at.isoformat(),
        "finished_at": result.finished_at.isoformat(),
        "generated_at": datetime.now(UTC).isoformat(),
    }


def render_html(summary: dict[str, Any]) -> str:
    """Static, dependency-free HTML page with the endpoint and check tables."""
    endpoint_rows = "\n".join(
        "      <tr><td>{}</td>{}<td>{}</td></tr>".format(
            html.escape(endpoint),
            "".join(f"<td>{float(stats.get(key, 0.0)):.2f}</td>" for key in _STAT_KEYS),
            int(stats.get("count", 0)),
        )
        for endpoint, stats in summary.get("endpoints", {}).items()
    )

    check_rows = []
    for scenario, checks in summary.get("checks", {}).get("by_scenario", {}).items():
        for name, counts in checks.items():
            status = "PASS" if counts["fails"] == 0 else "FAIL"
            check_rows.append(
                f'      <tr class="{status.lower()}"><td>{html.escape(scenario)}</td>'
                f"<td>{html.escape(name)}</td><td>{counts['passes']}</td>"
                f"<td>{counts['fails']}</td><td>{status}</td></tr>"
            )

    generated = html.escape(str(summary.get("generated_at", "")))
    return f"""<html>
  <head>
    <meta charset="utf-8">
    <title>Stress Test Report</title>
    <style>
      body {{ font-family: Arial, sans-serif; margin: 20px; }}
      h1 {{ color: #333; }}
      table {{ width: 700px; border-collapse: collapse; margin-bottom: 24px; }}
      th, td {{ border: 1px solid #ccc; padding: 8px; text-align: left; }}
      th {{ background-color: #eee; }}
      tr.fail td {{ color: #b00020; }}
    </style>
  </head>
  <body>
    <h1>Stress Test Report</h1>
    <p>Generated at {generated}</p>
    <h2>Metrics Grouped by Endpoint</h2>
    <table>
      <tr>
        <th>Endpoint</th>
        <th>Avg Duration (ms)</th>
        <th>Min Duration (ms)</th>
        <th>Max Duration (ms)</th>
        <th>p(95) (ms)</th>
        <th>Requests</th>
      </tr>
{endpoint_rows}
    </table>
    <h2>Checks</h2>
    <table>
      <tr><th>Scenario</th><th>Check</th><th>Passes</th><th>Fails</th><th>Status</th></tr>
{chr(10).join(check_rows)}
    </table>
  </body>
</html>
"""


def write_artifacts(
    summary: dict[str, Any],
    report_path: str | Path,
    summary_path: str | Path | None = None,
) -> None:
    """Write the HTML report and, if requested, the JSON summary file."""
    path = Path(report_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_html(summary), encoding="utf-8")
    logger.info("report_written", path=str(path))

    if summary_path:
        json_path = Path(summary_path)
        json_path.parent.mkdir(parents=True, exist_ok=True)
        json_path.write_text(json.dumps(summary, indent=2, default=str), encoding="utf-8")
        logger.info("summary_written", path=str(json_path))


def print_summary(summary: dict[str, Any], file: TextIO | None = None) -> None:
    """Human-readable summary table, on stderr unless *file* is given."""
    if file is None:
        file = sys.stderr
    line = "-" * 72
    print(f"\n{line}", file=file)
    print("  STRESS TEST RESULTS", file=file)
    print(line, file=file)

    print(
        f"  {'Endpoint':<28} {'avg':>8} {'min':>8} {'max':>8} {'p95':>8} {'count':>7}",
        file=file,
    )
    print(f"  {'-' * 28} {'-' * 8} {'-' * 8} {'-' * 8} {'-' * 8} {'-' * 7}", file=file)
    for endpoint, stats in summary.get("endpoints", {}).items():
        values = " ".join(f"{float(stats.get(k, 0.0)):>8.2f}" for k in _STAT_KEYS)
        print(f"  {endpoint:<28} {values} {int(stats.get('count', 0)):>7}", file=file)

    checks = summary.get("checks", {})
    passes = checks.get("passes", 0)
    fails = checks.get("fails", 0)
    status = "PASS" if fails == 0 else "FAIL"
    print(f"\n  Checks: {status} ({passes} passed, {fails} failed)", file=file)
    for scenario, by_name in checks.get("by_scenario", {}).items():
        for name, counts in by_name.items():
            if counts["fails"]:
                print(
                    f"    [FAIL] {scenario}: {name} "
                    f"({counts['fails']}/{counts['passes'] + counts['fails']} failed)",
                    file=file,
                )
    print(f"{line}\n", file=file)
