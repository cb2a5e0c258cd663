"""Markdown rendering for the reasoning log and the report pane.

Pure string functions; the CLI hands their output to rich.
"""

from __future__ import annotations

from typing import Dict, List

from ..schemas.outputs import LogEntry, Report
from ..pipeline.session import VerificationSession

LOG_ICONS: Dict[str, str] = {
    "info": "ℹ",
    "processing": "…",
    "success": "✔",
    "warning": "⚠",
    "error": "✖",
}

LOG_STYLES: Dict[str, str] = {
    "info": "blue",
    "processing": "dark_orange",
    "success": "green",
    "warning": "yellow",
    "error": "red",
}

LOADING_TEXT = "_Generating final report..._"
IDLE_TEXT = "_Report will be displayed here._"


def render_log_entry(entry: LogEntry) -> str:
    stamp = entry.timestamp.astimezone().strftime("%H:%M:%S")
    return f"[{stamp}] {LOG_ICONS[entry.kind]} {entry.message}"


def _bullet_list(lines: List[str]) -> str:
    return "\n".join(f"- {s.strip()}" for s in lines if s and s.strip())


def render_report_to_markdown(report: Report) -> str:
    """
    Layout, top to bottom:
      verdict + confidence, summary, location, time (only when known),
      satellite imagery (first 3), evidence breakdown, grounding sources.
    """
    sections = [
        f"## {report.verdict}\n\n**Confidence:** {report.confidence_score}%",
        f"### Summary\n\n{report.summary}",
    ]

    loc = report.estimated_location
    sections.append(
        f"### Estimated Location\n\n{loc.address}\n\n`Lat: {loc.latitude}, Lon: {loc.longitude}`"
    )

    if report.estimated_time and report.estimated_time != "unknown":
        sections.append(
            f"### Estimated Time\n\n**{report.estimated_time}**\n\n"
            "_Determined from shadow analysis and lighting conditions_"
        )

    satellite = report.satellite_data
    if satellite is not None and satellite.available:
        images = [
            f"{img.date[:10]} - cloud cover {img.cloud_cover:g}%"
            for img in satellite.imagery[:3]
        ]
        sections.append(
            f"### Satellite Imagery\n\nFound {satellite.count} Sentinel-2 images\n\n{_bullet_list(images)}"
        )

    evidence = report.evidence
    breakdown = [
        "### Evidence Breakdown",
        f"**Location analysis:** {evidence.location_analysis}",
        f"**Temporal analysis:** {evidence.temporal_analysis}",
    ]
    if evidence.satellite_analysis:
        breakdown.append(f"**Satellite analysis:** {evidence.satellite_analysis}")
    if evidence.visual_clues:
        breakdown.append(f"**Visual clues:**\n\n{_bullet_list(evidence.visual_clues)}")
    sections.append("\n\n".join(breakdown))

    if report.grounding_sources:
        links = [f"[{s.title}]({s.uri})" for s in report.grounding_sources]
        sections.append(f"### Grounding Sources\n\n{_bullet_list(links)}")

    return "\n\n".join(sections)


def render_report_pane(session: VerificationSession) -> str:
    """Report, error banner, loading text or idle placeholder; never empty."""
    state = session.state
    if state == "report":
        return render_report_to_markdown(session.report)
    if state == "loading":
        return LOADING_TEXT
    if state == "error":
        return f"### Analysis Failed\n\n{session.error}"
    return IDLE_TEXT
