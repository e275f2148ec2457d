from __future__ import annotations

import json
import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from careerintel.config import Settings, get_settings
from careerintel.core.text import clean_text
from careerintel.errors import ScoringResponseInvalid
from careerintel.llm.prompts import SCORING_SYSTEM_PROMPT, SCORING_USER_PROMPT
from careerintel.llm.providers import ScoringProvider, ScoringRequest, build_scoring_provider
from careerintel.types import CATEGORY_KEYS, CategoryScore, ScoringContext, ScoringResult

logger = logging.getLogger(__name__)

NOT_PROVIDED = "(not provided)"


def coerce_score(value: Any) -> float | None:
    """Clamp to [0, 100] and round half-up to two decimals; anything non-numeric is None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    number = max(0.0, min(100.0, number))
    return float(Decimal(repr(number)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def normalize_category_scores(raw: Any) -> dict[str, CategoryScore]:
    source = raw if isinstance(raw, dict) else {}
    result: dict[str, CategoryScore] = {}
    for key in CATEGORY_KEYS:
        entry = source.get(key)
        if isinstance(entry, CategoryScore):
            entry = entry.model_dump()
        if not isinstance(entry, dict):
            entry = {}
        result[key] = CategoryScore(
            score=coerce_score(entry.get("score")),
            feedback=clean_text(entry.get("feedback") or ""),
        )
    return result


def to_string_array(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    cleaned = (clean_text(item) if isinstance(item, str) else "" for item in value)
    return [item for item in cleaned if item]


def strip_inline_data(card: Any) -> Any:
    if not isinstance(card, dict) or not card.get("inline_data_base64"):
        return card
    clone = {key: value for key, value in card.items() if key != "inline_data_base64"}
    clone["inline_data_attached"] = True
    return clone


def build_scoring_request(context: ScoringContext) -> ScoringRequest:
    card = context.career_card_data
    career_card_json = json.dumps(strip_inline_data(card), indent=2, ensure_ascii=False, default=str)
    user_prompt = SCORING_USER_PROMPT.format(
        company_description=context.company_description or NOT_PROVIDED,
        role_description=context.role_description or NOT_PROVIDED,
        career_card_json=career_card_json,
    )

    inline_data = None
    inline_mime = "application/pdf"
    filename = ""
    if isinstance(card, dict):
        if isinstance(card.get("inline_data_base64"), str) and card["inline_data_base64"]:
            inline_data = card["inline_data_base64"]
        inline_mime = card.get("mime") or inline_mime
        filename = card.get("filename") or ""

    return ScoringRequest(
        system_prompt=SCORING_SYSTEM_PROMPT,
        user_prompt=user_prompt,
        inline_data_base64=inline_data,
        inline_mime=inline_mime,
        filename=filename,
    )


def normalize_scoring(arguments: dict[str, Any]) -> ScoringResult:
    return ScoringResult(
        overall_score=coerce_score(arguments.get("overallScore")),
        category_scores=normalize_category_scores(arguments.get("categoryScores")),
        strengths=to_string_array(arguments.get("strengths")),
        improvements=to_string_array(arguments.get("improvements")),
        overall_feedback=clean_text(arguments.get("overallFeedback")),
        scoring=arguments,
    )


class ScoringOrchestrator:
    def __init__(self, settings: Settings | None = None, provider: ScoringProvider | None = None):
        self.settings = settings or get_settings()
        self._provider = provider

    @property
    def provider(self) -> ScoringProvider:
        if self._provider is None:
            self._provider = build_scoring_provider(self.settings)
        return self._provider

    def score(self, context: ScoringContext) -> ScoringResult:
        request = build_scoring_request(context)
        result = self.provider.score(request)
        if not result.arguments:
            logger.warning("Scoring response had no structured call provider=%s", result.provider)
            raise ScoringResponseInvalid(details={"provider": result.provider, "model": result.model})

        scoring = normalize_scoring(result.arguments)
        scoring.provider = result.provider
        scoring.model = result.model
        scoring.provider_response = result.raw
        return scoring
