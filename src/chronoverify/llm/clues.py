from .client import llm_client
from .prompts import load_prompt
from ..errors import ModelOutputParseError
from ..schemas.evidence import MediaFile
from ..config import get_settings

settings = get_settings()


def run_clue_extraction(media: MediaFile, location_context: str) -> str:
    """Phase 1: free-text, comma-separated list of visual location clues."""
    prompt_template = load_prompt("extract_clues")
    prompt = f"{prompt_template}\n\n# Known region\n{location_context}"

    result = llm_client.run_text(prompt, model=settings.MODEL_CLUES, media=media)
    clues = result.text.strip()
    if not clues:
        raise ModelOutputParseError("Clue extraction returned an empty response")
    return clues
