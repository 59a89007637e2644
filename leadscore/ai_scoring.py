"""Advisory lead scoring backed by a chat-completion model.

The rule-based scorer in ``scoring`` is the score of record; this module asks
a language model for a second opinion and normalizes its free-text reply.
Every failure collapses into ``FALLBACK_RESULT`` so callers never see an
exception from the model side.
"""

import json
import logging
import re
from functools import lru_cache
from typing import Any, Mapping, Optional, Protocol, Union

from openai import AsyncOpenAI
from pydantic import BaseModel

from .config import settings
from .models import AIScoreResult, GenerationOptions
from .normalizer import to_record


logger = logging.getLogger("leadscore.ai")


SYSTEM_PROMPT = "You are a sales lead evaluation assistant."
DEFAULT_SCORE = 50
FALLBACK_REASONING = "Error in AI evaluation - using default score"
SCORE_PATTERN = re.compile(r"\b\d{1,3}\b")


class TextGenerator(Protocol):
    async def generate(self, prompt: str, options: GenerationOptions) -> Optional[str]:
        ...


@lru_cache(maxsize=1)
def _get_client() -> AsyncOpenAI:
    return AsyncOpenAI(api_key=settings.OPENAI_API_KEY)


class OpenAIChatGenerator:
    """TextGenerator over the OpenAI chat completions API.

    The client is built on first use, so a missing API key shows up as a
    generation error rather than an import-time failure.
    """

    def __init__(self, model: Optional[str] = None) -> None:
        self.model = model or settings.OPENAI_MODEL

    async def generate(self, prompt: str, options: GenerationOptions) -> Optional[str]:
        response = await _get_client().chat.completions.create(
            model=options.model or self.model,
            messages=[
                {"role": "system", "content": options.system},
                {"role": "user", "content": prompt},
            ],
            temperature=options.temperature,
            max_tokens=options.max_tokens,
        )
        return response.choices[0].message.content


def default_options() -> GenerationOptions:
    return GenerationOptions(
        system=SYSTEM_PROMPT,
        temperature=settings.AI_TEMPERATURE,
        max_tokens=settings.AI_MAX_TOKENS,
    )


def fallback_result() -> AIScoreResult:
    return AIScoreResult(score=DEFAULT_SCORE, reasoning=FALLBACK_REASONING)


def build_prompt(lead: Union[BaseModel, Mapping[str, Any]]) -> str:
    record = to_record(lead)
    return (
        "Analyze this sales lead and provide a quality score between 1-100.\n"
        "Consider these factors in your evaluation:\n"
        "- Name completeness and professionalism\n"
        "- Email domain quality\n"
        "- Company reputation (based on name)\n"
        "- Current engagement status\n"
        "\n"
        "Lead Details:\n"
        f"Name: {record['name']}\n"
        f"Email: {record['email']}\n"
        f"Company: {record['company']}\n"
        f"Status: {record['status']}\n"
        "\n"
        "Provide only the numerical score and brief 1-sentence justification.\n"
        'Example: "85 - Strong professional email and established company"'
    )


def extract_score_from_text(text: Optional[str]) -> int:
    match = SCORE_PATTERN.search(text or "")
    if not match:
        return DEFAULT_SCORE
    return max(1, min(100, int(match.group(0))))


async def get_ai_score(
    lead: Union[BaseModel, Mapping[str, Any]],
    generator: TextGenerator,
    options: Optional[GenerationOptions] = None,
) -> AIScoreResult:
    prompt = build_prompt(lead)
    try:
        text = await generator.generate(prompt, options or default_options())
    except Exception as e:
        logger.warning(json.dumps({"event": "ai_score_failed", "error": f"{type(e).__name__}: {e}"}))
        return fallback_result()
    if text is None:
        logger.warning(json.dumps({"event": "ai_score_no_content"}))
        return fallback_result()
    return AIScoreResult(score=extract_score_from_text(text), reasoning=text)
