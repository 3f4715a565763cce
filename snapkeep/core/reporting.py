"""
Report generation for audits and drills.

Provides utilities to render reports as:
- JSON (machine-readable)
- Markdown (human-readable, no terminal colors)

Presentation (colors, exit codes) belongs to the caller.
"""

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Union

from .atomic_write import atomic_write


UNITS = ("B", "KB", "MB", "GB", "TB")


def format_bytes(size: int) -> str:
    """
    Human-readable byte count.

    >>> format_bytes(1536)
    '1.50 KB'
    """
    if size == 0:
        return "0 B"
    value = float(size)
    unit = 0
    while value >= 1024.0 and unit < len(UNITS) - 1:
        value /= 1024.0
        unit += 1
    return f"{value:.2f} {UNITS[unit]}"


def _is_drill(report) -> bool:
    return hasattr(report, 'total_tested')


def health_report_to_dict(report) -> Dict[str, Any]:
    data = asdict(report)
    data['is_healthy'] = report.is_healthy
    for item in data['items']:
        item['status'] = item['status'].value
    return data


def drill_report_to_dict(report) -> Dict[str, Any]:
    data = asdict(report)
    data['passed'] = report.passed
    data['success_rate'] = round(report.success_rate, 1)
    return data


def report_to_dict(report) -> Dict[str, Any]:
    """Plain dict for a HealthReport or DrillReport."""
    if _is_drill(report):
        return drill_report_to_dict(report)
    return health_report_to_dict(report)


def generate_json_report(report) -> str:
    return json.dumps(report_to_dict(report), indent=2)


def _health_markdown(report) -> str:
    lines = ["# Backup Health Check Report\n"]
    lines.append(f"**Checked at**: {report.checked_at}\n")

    if report.is_healthy:
        lines.append("\n✅ **All backups are healthy!**\n")
    else:
        lines.append("\n⚠️ **Issues detected!**\n")

    lines.append("\n## Summary\n")
    lines.append(f"- **Total backups**: {report.total_snapshots}\n")
    lines.append(f"- **Healthy**: {report.healthy}\n")
    lines.append(f"- **Corrupted**: {len(report.corrupted)}\n")
    lines.append(f"- **Missing metadata**: {len(report.missing_metadata)}\n")

    if report.corrupted:
        lines.append("\n## Corrupted Backups\n")
        lines.extend(f"- `{path}`\n" for path in report.corrupted)

    if report.missing_metadata:
        lines.append("\n## Missing Metadata\n")
        lines.extend(f"- `{path}`\n" for path in report.missing_metadata)

    if report.stale:
        lines.append("\n## Stale Backups\n")
        for stale in report.stale:
            lines.append(
                f"- `{stale.original_path}` ({stale.days_since_backup} days old, "
                f"last backup {stale.timestamp})\n"
            )

    if report.warnings:
        lines.append("\n## Warnings\n")
        lines.extend(f"- {warning}\n" for warning in report.warnings)

    if report.errors:
        lines.append("\n## Errors\n")
        lines.extend(f"- {error}\n" for error in report.errors)

    return "".join(lines)


def _drill_markdown(report) -> str:
    lines = ["# Backup Restoration Drill Report\n"]

    lines.append("\n## Summary\n")
    lines.append(f"- **Backups tested**: {report.total_tested}\n")
    lines.append(f"- **Successful**: {report.successful}\n")
    lines.append(f"- **Failed**: {len(report.failed)}\n")
    lines.append(f"- **Success rate**: {report.success_rate:.1f}%\n")
    lines.append(f"- **Duration**: {report.duration_ms} ms\n")

    if report.failed:
        lines.append("\n## Failed Restorations\n")
        for failure in report.failed:
            lines.append(f"\n### `{failure.snapshot_path}`\n")
            lines.append(f"- **Original**: {failure.original_path}\n")
            lines.append(f"- **Error**: {failure.error}\n")
    else:
        lines.append("\n✅ **All backups can be safely restored**\n")

    if report.diverged:
        lines.append("\n## Diverged Originals\n")
        lines.extend(f"- `{path}`\n" for path in report.diverged)

    return "".join(lines)


def generate_markdown_report(report) -> str:
    if _is_drill(report):
        return _drill_markdown(report)
    return _health_markdown(report)


def save_report(report, output_path: Union[str, Path], format: str = 'markdown') -> Path:
    """
    Write a report to disk.

    Args:
        report: HealthReport or DrillReport
        output_path: Destination file
        format: 'markdown' or 'json'

    Raises:
        ValueError: If format is unknown
    """
    if format == 'markdown':
        content = generate_markdown_report(report)
    elif format == 'json':
        content = generate_json_report(report)
    else:
        raise ValueError(f"Unknown format: {format}. Use 'markdown' or 'json'")

    output_path = Path(output_path)
    atomic_write(output_path, content)
    return output_path
