import json

from .client import llm_client
from .prompts import load_prompt
from ..errors import ModelOutputParseError
from ..schemas.evidence import EvidenceBundle, MediaFile
from ..schemas.outputs import Report, ReportDraft
from ..config import get_settings

settings = get_settings()

INVALID_REPORT_MESSAGE = "AI returned a report in an invalid format."


def build_synthesis_prompt(bundle: EvidenceBundle) -> str:
    prompt_template = load_prompt("synthesize_report")

    location_dump = bundle.location.model_dump_json(by_alias=True, indent=2) if bundle.location else "null"
    time_dump = bundle.time_estimate.model_dump_json(by_alias=True, indent=2) if bundle.time_estimate else "null"
    sources_dump = json.dumps([s.model_dump() for s in bundle.grounding_sources], indent=2)
    claimed = bundle.claimed_timestamp or "Not provided - time was DETERMINED from evidence"

    satellite = bundle.satellite_data
    if satellite is not None and satellite.available:
        satellite_line = f"Yes - {satellite.count} images found"
    else:
        satellite_line = "No"

    return (
        f"{prompt_template}\n\n"
        f"# Visual Clues\n{bundle.raw_clues}\n\n"
        f"# Estimated Location\n{location_dump}\n\n"
        f"# Time Analysis\n{time_dump}\n\n"
        f"# Claimed Timestamp\n{claimed}\n\n"
        f"# Grounding Sources\n{sources_dump}\n\n"
        f"# Satellite Imagery Available\n{satellite_line}"
    )


def run_report_synthesis(media: MediaFile, bundle: EvidenceBundle) -> Report:
    """
    Phase 5: merge every earlier phase into the final Report.
    A malformed reply is fatal here; there is no safe default verdict.
    """
    prompt = build_synthesis_prompt(bundle)
    try:
        draft = llm_client.run_structured(
            prompt,
            ReportDraft,
            model=settings.MODEL_REPORT,
            media=media,
            reasoning_effort=settings.REPORT_REASONING_EFFORT,
        )
    except ModelOutputParseError as e:
        raise ModelOutputParseError(INVALID_REPORT_MESSAGE, raw_text=e.raw_text) from e

    return Report.from_draft(draft, bundle.grounding_sources, bundle.satellite_data)
