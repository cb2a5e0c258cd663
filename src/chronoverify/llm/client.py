"""OpenAI client wrapper for the verification phases.

Three call shapes are used by the pipeline:
- run_text: free text, optionally with an inline image and web search
  (search citations come back as GroundingSource entries)
- run_structured: a pydantic-typed result. With STRUCTURED_OUTPUTS on, the
  completion is constrained by the model's JSON schema; otherwise the schema
  is described in the prompt and the reply is repaired and validated locally.

Any failure to obtain the expected shape surfaces as ModelOutputParseError.
"""

import json
import re
from typing import Any, List, Optional, Type, TypeVar

from openai import ContentFilterFinishReasonError, LengthFinishReasonError, OpenAI
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from ..config import Settings, get_settings
from ..errors import ModelOutputParseError
from ..log import get_logger
from ..schemas.evidence import GroundingSource, MediaFile

logger = get_logger("llm")

T = TypeVar("T", bound=BaseModel)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


class CompletionResult(BaseModel):
    text: str
    sources: List[GroundingSource]
    model: str


def parse_json_text(text: str) -> Any:
    """
    Parse JSON out of a model reply that may be wrapped in code fences or prose.
    Raises ModelOutputParseError when nothing parseable is found.
    """
    cleaned = _FENCE_RE.sub("", text or "").strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        match = _OBJECT_RE.search(cleaned)
        if match:
            try:
                return json.loads(match.group(0))
            except json.JSONDecodeError:
                pass
        raise ModelOutputParseError(f"Model reply is not valid JSON: {e.msg}", raw_text=text or "") from e


def parse_model_output(text: str, schema_model: Type[T]) -> T:
    data = parse_json_text(text)
    try:
        return schema_model.model_validate(data)
    except SchemaValidationError as e:
        raise ModelOutputParseError(
            f"Model reply does not match {schema_model.__name__}: {e.error_count()} validation error(s)",
            raw_text=text,
        ) from e


def extract_sources(message) -> List[GroundingSource]:
    """Collect url_citation annotations in order, one entry per URI."""
    sources: List[GroundingSource] = []
    seen = set()
    for annotation in getattr(message, "annotations", None) or []:
        if getattr(annotation, "type", None) != "url_citation":
            continue
        citation = annotation.url_citation
        if not citation.url or citation.url in seen:
            continue
        seen.add(citation.url)
        sources.append(GroundingSource(title=citation.title or citation.url, uri=citation.url))
    return sources


class LLMClient:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._client: Optional[OpenAI] = None

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self.settings.OPENAI_API_KEY:
                raise RuntimeError("OPENAI_API_KEY is not configured")
            self._client = OpenAI(
                api_key=self.settings.OPENAI_API_KEY,
                timeout=self.settings.LLM_TIMEOUT_SECONDS,
                max_retries=0,
            )
        return self._client

    @staticmethod
    def build_messages(prompt: str, media: Optional[MediaFile] = None) -> list:
        if media is None:
            return [{"role": "user", "content": prompt}]
        return [{
            "role": "user",
            "content": [
                {"type": "image_url", "image_url": {"url": media.to_data_url()}},
                {"type": "text", "text": prompt},
            ],
        }]

    def run_text(
        self,
        prompt: str,
        model: str,
        media: Optional[MediaFile] = None,
        web_search: bool = False,
    ) -> CompletionResult:
        kwargs = {}
        if web_search:
            kwargs["web_search_options"] = {}

        response = self.client.chat.completions.create(
            model=model,
            messages=self.build_messages(prompt, media),
            **kwargs,
        )
        message = response.choices[0].message
        return CompletionResult(
            text=message.content or "",
            sources=extract_sources(message) if web_search else [],
            model=model,
        )

    def run_structured(
        self,
        prompt: str,
        schema_model: Type[T],
        model: str,
        media: Optional[MediaFile] = None,
        reasoning_effort: Optional[str] = None,
    ) -> T:
        if not self.settings.STRUCTURED_OUTPUTS:
            return self._run_json_compat(prompt, schema_model, model, media, reasoning_effort)

        kwargs = {}
        if reasoning_effort:
            kwargs["reasoning_effort"] = reasoning_effort

        try:
            completion = self.client.chat.completions.parse(
                model=model,
                messages=self.build_messages(prompt, media),
                response_format=schema_model,
                **kwargs,
            )
        except (SchemaValidationError, json.JSONDecodeError, LengthFinishReasonError, ContentFilterFinishReasonError) as e:
            raise ModelOutputParseError(f"Structured output for {schema_model.__name__} failed: {e}") from e

        message = completion.choices[0].message
        if message.parsed is None:
            reason = message.refusal or "empty structured response"
            raise ModelOutputParseError(
                f"Structured output for {schema_model.__name__} failed: {reason}",
                raw_text=message.content or "",
            )
        return message.parsed

    def _run_json_compat(self, prompt, schema_model, model, media, reasoning_effort):
        # Compatibility mode for endpoints without response_format support
        schema_hint = json.dumps(schema_model.model_json_schema(by_alias=True), indent=2)
        full_prompt = (
            f"{prompt}\n\n"
            "Respond with valid JSON only, no markdown and no explanations, matching this JSON schema:\n"
            f"{schema_hint}"
        )
        kwargs = {"reasoning_effort": reasoning_effort} if reasoning_effort else {}
        response = self.client.chat.completions.create(
            model=model,
            messages=self.build_messages(full_prompt, media),
            **kwargs,
        )
        text = response.choices[0].message.content or ""
        return parse_model_output(text, schema_model)


llm_client = LLMClient()
