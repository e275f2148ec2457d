from __future__ import annotations

import hashlib
import json
import math
from typing import Any

from careerintel.types import ScoringContext, StoredReport

INLINE_DATA_SENTINEL = "__inline_pdf__"

# fields that change on every extraction without the card itself changing
_VOLATILE_CARD_FIELDS = ("extracted_at",)


def stable_stringify(value: Any) -> str:
    """Serialize ``value`` with object keys sorted at every nesting level."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return "null"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(stable_stringify(item) for item in value) + "]"
    if isinstance(value, dict):
        keys = sorted(str(key) for key in value)
        lookup = {str(key): item for key, item in value.items()}
        return "{" + ",".join(
            f"{json.dumps(key, ensure_ascii=False)}:{stable_stringify(lookup[key])}" for key in keys
        ) + "}"
    if hasattr(value, "model_dump"):
        return stable_stringify(value.model_dump())
    return json.dumps(str(value), ensure_ascii=False)


def hash_scoring_inputs(context: ScoringContext) -> str:
    payload = {
        "careerCardData": context.career_card_data,
        "companyDescription": context.company_description or "",
        "roleDescription": context.role_description or "",
    }
    return hashlib.sha256(stable_stringify(payload).encode("utf-8")).hexdigest()


def hash_safe_card(card: Any) -> Any:
    if not isinstance(card, dict):
        return card
    safe = {key: value for key, value in card.items() if key not in _VOLATILE_CARD_FIELDS}
    if safe.get("inline_data_base64"):
        safe["inline_data_base64"] = INLINE_DATA_SENTINEL
    return safe


def compute_card_hash(
    career_card_data: Any,
    *,
    company_description: str,
    role_description: str,
) -> str:
    return hash_scoring_inputs(
        ScoringContext(
            career_card_data=hash_safe_card(career_card_data),
            company_description=company_description,
            role_description=role_description,
        )
    )


def is_report_fresh(report: StoredReport | None, card_hash: str, *, force_refresh: bool = False) -> bool:
    if report is None or force_refresh:
        return False
    return bool(report.metadata_hash) and report.metadata_hash == card_hash
