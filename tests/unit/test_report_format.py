from unittest.mock import MagicMock

from chronoverify.pipeline.session import VerificationSession
from chronoverify.rendering.report_format import (
    IDLE_TEXT,
    LOADING_TEXT,
    render_log_entry,
    render_report_pane,
    render_report_to_markdown,
)
from chronoverify.schemas.evidence import GroundingSource
from chronoverify.schemas.outputs import LogEntry, Report
from chronoverify.schemas.satellite import SatelliteResult


def _satellite(n):
    return SatelliteResult.model_validate({
        "available": True,
        "imagery": [
            {"id": f"p{i}", "name": "S2", "date": f"2024-10-{10 + i:02d}T08:30:00Z", "cloudCover": i}
            for i in range(n)
        ],
        "location": {"lat": 31.5, "lon": 34.45},
        "searchDate": "2024-10-23",
    })


def test_report_sections_in_order(report_draft):
    report = Report.from_draft(
        report_draft,
        grounding_sources=[GroundingSource(title="Wiki", uri="https://wiki.example/rimal")],
        satellite_data=_satellite(4),
    )
    md = render_report_to_markdown(report)

    order = ["## Verified", "### Summary", "### Estimated Location", "### Estimated Time",
             "### Satellite Imagery", "### Evidence Breakdown", "### Grounding Sources"]
    positions = [md.index(h) for h in order]
    assert positions == sorted(positions)
    assert "**Confidence:** 78%" in md
    assert "Found 4 Sentinel-2 images" in md
    # only the first three images are listed
    assert "2024-10-12" in md
    assert "2024-10-13" not in md
    assert "[Wiki](https://wiki.example/rimal)" in md
    assert "- Arabic shop signage" in md


def test_unknown_time_and_missing_extras_are_hidden(report_draft):
    draft = report_draft.model_copy(update={"estimated_time": "unknown"})
    md = render_report_to_markdown(Report.from_draft(draft, grounding_sources=None, satellite_data=None))
    assert "### Estimated Time" not in md
    assert "### Satellite Imagery" not in md
    assert "### Grounding Sources" not in md


def test_log_entry_line():
    line = render_log_entry(LogEntry(kind="warning", message="No recent satellite imagery"))
    assert line.endswith("⚠ No recent satellite imagery")
    assert line.startswith("[")


def test_report_pane_states(report_draft):
    session = VerificationSession(pipeline=MagicMock())
    assert render_report_pane(session) == IDLE_TEXT

    session.is_loading = True
    assert render_report_pane(session) == LOADING_TEXT

    session.is_loading = False
    session.error = "quota exceeded"
    assert render_report_pane(session) == "### Analysis Failed\n\nquota exceeded"

    session.error = None
    session.report = Report.from_draft(report_draft, grounding_sources=None, satellite_data=None)
    assert render_report_pane(session).startswith("## Verified")
