from typing import Optional

from .client import llm_client
from .prompts import load_prompt
from ..errors import ModelOutputParseError
from ..log import get_logger
from ..schemas.evidence import LocationEstimate, MediaFile, TimeEstimate
from ..config import get_settings

settings = get_settings()
logger = get_logger("chronology")


def run_time_determination(media: MediaFile, location: LocationEstimate, claimed_date: Optional[str]) -> TimeEstimate:
    """
    Phase 4: estimate time of day from shadows, lighting and activity.
    Never raises on a malformed reply; the estimate is downgraded to method "error" instead.
    """
    prompt_template = load_prompt("determine_time")
    known_date = f"Known date: {claimed_date}" if claimed_date else "Date unknown"
    prompt = (
        f"{prompt_template}\n\n"
        f"# Location\n"
        f"Address: {location.address}\n"
        f"Coordinates: {location.latitude}, {location.longitude}\n"
        f"{known_date}"
    )

    try:
        return llm_client.run_structured(prompt, TimeEstimate, model=settings.MODEL_TIMESTAMP, media=media)
    except ModelOutputParseError as e:
        logger.warning(f"Time estimate unparseable: {e}")
        return TimeEstimate.parse_failure(e.raw_text or str(e))
