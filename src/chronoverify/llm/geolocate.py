"""Grounded geolocation (phase 2).

Two calls: a web-search-grounded free-text answer, then a structuring call
that turns that answer into a LocationEstimate. The grounded call cannot be
schema-constrained, so this stays a two-step exchange in both client modes.
"""

from typing import List, Tuple

from .client import llm_client
from .prompts import load_prompt
from ..errors import ModelOutputParseError
from ..log import get_logger
from ..schemas.evidence import GroundingSource, LocationEstimate
from ..config import get_settings

settings = get_settings()
logger = get_logger("geolocate")


def run_geolocation(clues: str, location_context: str) -> Tuple[LocationEstimate, List[GroundingSource]]:
    prompt_template = load_prompt("geolocate")
    prompt = (
        f"{prompt_template}\n\n"
        f"# Known region\n{location_context}\n\n"
        f"# Visual clues\n{clues}"
    )
    grounded = llm_client.run_text(prompt, model=settings.MODEL_GEOLOCATE, web_search=True)

    structure_prompt = f"{load_prompt('structure_location')}\n\n# Text\n{grounded.text}"
    try:
        location = llm_client.run_structured(structure_prompt, LocationEstimate, model=settings.MODEL_STRUCTURE)
    except ModelOutputParseError as e:
        logger.warning(f"Could not structure location answer, using region fallback: {e}")
        location = LocationEstimate.region_fallback(
            grounded.text,
            latitude=settings.FALLBACK_LATITUDE,
            longitude=settings.FALLBACK_LONGITUDE,
        )

    return location, grounded.sources
