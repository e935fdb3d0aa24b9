"""
Markdown formatting of batch reports.
Turns a BatchReport into a human-readable summary with one section per due date.
"""
from datetime import datetime
from typing import List
import logging

from .models import BatchReport, GroupResult, PreviewEntry

logger = logging.getLogger(__name__)


def _escape(text: str) -> str:
    return str(text).replace('|', '\\|')


class MarkdownFormatter:
    """Formats batch results into markdown reports."""

    @staticmethod
    def format_group(group: GroupResult) -> str:
        md = []
        md.append(f"\n## Due date {group.due_date.strftime('%d/%m/%Y')}\n")
        md.append(f"- **Destination:** `{group.destination_folder}`")
        md.append(f"- **Invoice numbers:** {group.total_notes}")
        md.append(f"- **Found:** {group.total_found}")
        md.append(f"- **Copied:** {group.total_copied}")
        md.append(f"- **Not found:** {group.total_not_found}")
        md.append(f"- **Ignored (too short):** {group.total_ignored}")
        md.append(f"- **Errors:** {group.total_errors}")
        md.append(f"- **Processing Time:** {group.elapsed_seconds:.2f}s")

        if group.copied:
            md.append("\n### Copied Files\n")
            for name in group.copied:
                md.append(f"- {name}")

        if group.not_found:
            md.append("\n### Not Found\n")
            md.append(", ".join(group.not_found))

        if group.ignored:
            md.append("\n### Ignored\n")
            md.append(", ".join(group.ignored))

        if group.errors:
            md.append("\n### Errors\n")
            md.append("| File | Error |")
            md.append("|------|-------|")
            for error in group.errors:
                md.append(f"| {_escape(error.filename)} | {_escape(error.reason)} |")

        return "\n".join(md)

    @staticmethod
    def format_batch_report(report: BatchReport) -> str:
        """
        Creates the batch summary report:
        - Overview table with one row per due date
        - Aggregate counts and overall status
        - Detail section per group
        """
        md = []
        summary = report.summary

        md.append("# Invoice Copy Summary Report")
        md.append(f"\n*Generated on: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}*\n")
        md.append(f"**Status:** {'Completed' if report.success else 'Completed with errors'}\n")

        md.append("## Overview\n")
        md.append("| Due date | Invoices | Found | Copied | Not found | Ignored | Errors |")
        md.append("|----------|----------|-------|--------|-----------|---------|--------|")
        for group in report.groups:
            md.append(
                f"| {group.due_date.isoformat()} | {group.total_notes} | {group.total_found} "
                f"| {group.total_copied} | {group.total_not_found} | {group.total_ignored} "
                f"| {group.total_errors} |"
            )

        md.append("\n## Overall Statistics\n")
        md.append(f"- **Groups:** {summary.total_groups}")
        md.append(f"- **Invoice numbers:** {summary.total_notes}")
        md.append(f"- **Found:** {summary.total_found}")
        md.append(f"- **Copied:** {summary.total_copied}")
        md.append(f"- **Not found:** {summary.total_not_found}")
        md.append(f"- **Ignored:** {summary.total_ignored}")
        md.append(f"- **Errors:** {summary.total_errors}")
        md.append(f"- **Total Time:** {report.elapsed_seconds:.2f}s")

        for group in report.groups:
            md.append(MarkdownFormatter.format_group(group))

        return "\n".join(md)

    @staticmethod
    def format_preview(entries: List[PreviewEntry]) -> str:
        md = ["| Invoice | Status | Planned name | Details |", "|---------|--------|--------------|---------|"]
        for entry in entries:
            md.append(
                f"| {_escape(entry.identifier)} | {entry.status.value} "
                f"| {_escape(entry.planned_name or '')} | {_escape(entry.message)} |"
            )
        return "\n".join(md)
