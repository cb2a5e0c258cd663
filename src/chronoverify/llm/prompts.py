import yaml
from functools import lru_cache
from pathlib import Path

PROMPTS_DIR = Path(__file__).resolve().parent / "prompts"


@lru_cache()
def load_prompt(name: str) -> str:
    # Prompts ship inside the package so the CLI works from any directory
    yaml_path = PROMPTS_DIR / f"{name}.yaml"
    if yaml_path.exists():
        with open(yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
            return data.get("content", "").strip()

    raise FileNotFoundError(f"Prompt {name} not found in {PROMPTS_DIR}")
