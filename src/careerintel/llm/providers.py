from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import quote

import openai
import requests
from openai import OpenAI

from careerintel.config import Settings
from careerintel.errors import ScoringRequestFailed, ScoringResponseInvalid, ScoringServiceMisconfigured
from careerintel.llm.prompts import (
    SCORING_FUNCTION_DESCRIPTION,
    SCORING_FUNCTION_NAME,
    SCORING_PARAMETERS_SCHEMA,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ScoringRequest:
    system_prompt: str
    user_prompt: str
    inline_data_base64: str | None = None
    inline_mime: str = "application/pdf"
    filename: str = ""


@dataclass(slots=True)
class ProviderResult:
    provider: str
    model: str
    arguments: dict[str, Any] | None
    raw: dict[str, Any] = field(default_factory=dict)


class ScoringProvider(Protocol):
    name: str

    def score(self, request: ScoringRequest) -> ProviderResult: ...


def parse_arguments(value: Any) -> dict[str, Any] | None:
    if isinstance(value, dict):
        return value
    if isinstance(value, str) and value.strip():
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            logger.warning("Failed to parse structured scoring arguments")
            return None
        return parsed if isinstance(parsed, dict) else None
    return None


class GeminiScoringProvider:
    name = "gemini"

    def __init__(self, settings: Settings, session: requests.Session | None = None):
        self.settings = settings
        self.session = session or requests.Session()

    @property
    def model(self) -> str:
        return self.settings.gemini_model

    def score(self, request: ScoringRequest) -> ProviderResult:
        if not self.settings.gemini_api_key:
            raise ScoringServiceMisconfigured(details={"provider": self.name})

        url = f"{self.settings.gemini_base_url.rstrip('/')}/models/{quote(self.model, safe='')}:generateContent"
        try:
            response = self.session.post(
                url,
                params={"key": self.settings.gemini_api_key},
                json=self.build_body(request),
                timeout=self.settings.gemini_timeout_sec,
            )
        except requests.RequestException as exc:
            logger.warning("Scoring request failed provider=%s error=%s", self.name, exc)
            raise ScoringRequestFailed(details={"provider": self.name, "error": str(exc)}) from exc

        if not response.ok:
            logger.warning("Scoring request failed provider=%s status=%s", self.name, response.status_code)
            raise ScoringRequestFailed(
                status_code=response.status_code,
                details={"provider": self.name, "body": response.text},
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ScoringResponseInvalid(details={"provider": self.name, "body": response.text}) from exc

        return ProviderResult(
            provider=self.name,
            model=self.model,
            arguments=self.extract_arguments(data),
            raw=data if isinstance(data, dict) else {"raw": data},
        )

    @staticmethod
    def build_body(request: ScoringRequest) -> dict[str, Any]:
        parts: list[dict[str, Any]] = [{"text": request.user_prompt}]
        if request.inline_data_base64:
            parts.append(
                {
                    "inline_data": {
                        "mime_type": request.inline_mime,
                        "data": request.inline_data_base64,
                    }
                }
            )

        return {
            "system_instruction": {"parts": [{"text": request.system_prompt}]},
            "contents": [{"role": "user", "parts": parts}],
            "tools": [
                {
                    "function_declarations": [
                        {
                            "name": SCORING_FUNCTION_NAME,
                            "description": SCORING_FUNCTION_DESCRIPTION,
                            "parameters": SCORING_PARAMETERS_SCHEMA,
                        }
                    ]
                }
            ],
            "tool_config": {
                "function_calling_config": {
                    "mode": "ANY",
                    "allowed_function_names": [SCORING_FUNCTION_NAME],
                }
            },
        }

    @staticmethod
    def extract_arguments(data: Any) -> dict[str, Any] | None:
        if not isinstance(data, dict):
            return None
        candidates = data.get("candidates") or []
        if not candidates or not isinstance(candidates[0], dict):
            return None
        parts = (candidates[0].get("content") or {}).get("parts") or []
        for part in parts:
            if isinstance(part, dict) and part.get("functionCall"):
                return parse_arguments(part["functionCall"].get("args"))
        return None


class OpenAIScoringProvider:
    name = "openai"

    def __init__(self, settings: Settings, client: Any | None = None):
        self.settings = settings
        self._client = client

    @property
    def model(self) -> str:
        return self.settings.openai_model_scoring

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = OpenAI(
                base_url=self.settings.openai_base_url,
                api_key=self.settings.openai_api_key,
                timeout=float(self.settings.openai_timeout_sec),
                max_retries=0,
            )
        return self._client

    def score(self, request: ScoringRequest) -> ProviderResult:
        if not self.settings.openai_api_key:
            raise ScoringServiceMisconfigured(details={"provider": self.name})

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=self.build_messages(request),
                tools=[
                    {
                        "type": "function",
                        "function": {
                            "name": SCORING_FUNCTION_NAME,
                            "description": SCORING_FUNCTION_DESCRIPTION,
                            "parameters": SCORING_PARAMETERS_SCHEMA,
                        },
                    }
                ],
                tool_choice={"type": "function", "function": {"name": SCORING_FUNCTION_NAME}},
            )
        except openai.APIStatusError as exc:
            logger.warning("Scoring request failed provider=%s status=%s", self.name, exc.status_code)
            raise ScoringRequestFailed(
                status_code=exc.status_code,
                details={"provider": self.name, "body": exc.response.text},
            ) from exc
        except openai.APIError as exc:
            logger.warning("Scoring request failed provider=%s error=%s", self.name, exc)
            raise ScoringRequestFailed(details={"provider": self.name, "error": str(exc)}) from exc

        raw = response.model_dump() if hasattr(response, "model_dump") else {}
        if not isinstance(raw, dict):
            raw = {"raw": raw}
        return ProviderResult(
            provider=self.name,
            model=self.model,
            arguments=self.extract_arguments(response),
            raw=raw,
        )

    @staticmethod
    def build_messages(request: ScoringRequest) -> list[dict[str, Any]]:
        content: list[dict[str, Any]] = [{"type": "text", "text": request.user_prompt}]
        if request.inline_data_base64:
            content.append(
                {
                    "type": "file",
                    "file": {
                        "filename": request.filename or "career_card.pdf",
                        "file_data": f"data:{request.inline_mime};base64,{request.inline_data_base64}",
                    },
                }
            )
        return [
            {"role": "system", "content": request.system_prompt},
            {"role": "user", "content": content},
        ]

    @staticmethod
    def extract_arguments(response: Any) -> dict[str, Any] | None:
        choices = getattr(response, "choices", None) or []
        if not choices:
            return None
        message = getattr(choices[0], "message", None)
        tool_calls = getattr(message, "tool_calls", None) or []
        for call in tool_calls:
            function = getattr(call, "function", None)
            if function is not None and getattr(function, "name", "") == SCORING_FUNCTION_NAME:
                return parse_arguments(getattr(function, "arguments", None))
        return None


def build_scoring_provider(settings: Settings) -> ScoringProvider:
    if settings.scoring_provider == "gemini":
        return GeminiScoringProvider(settings)
    if settings.scoring_provider == "openai":
        return OpenAIScoringProvider(settings)
    raise ScoringServiceMisconfigured(
        f"Unsupported SCORING_PROVIDER='{settings.scoring_provider}'",
        details={"provider": settings.scoring_provider},
    )
