from __future__ import annotations

import json
from types import SimpleNamespace

import pytest
import requests

from careerintel.config import Settings
from careerintel.errors import ScoringRequestFailed, ScoringServiceMisconfigured
from careerintel.llm.prompts import SCORING_FUNCTION_NAME
from careerintel.llm.providers import GeminiScoringProvider, OpenAIScoringProvider, ScoringRequest

SCORING_ARGS = {
    "overallScore": 81,
    "categoryScores": {},
    "strengths": ["Python"],
    "improvements": [],
    "overallFeedback": "Solid",
}


class FakeHTTPResponse:
    def __init__(self, status_code: int, payload=None, text: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.text = text or json.dumps(payload)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    def post(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return self.response


def _gemini(session: FakeSession, **overrides) -> GeminiScoringProvider:
    settings = Settings(gemini_api_key="test-key", gemini_model="gemini-test", **overrides)
    return GeminiScoringProvider(settings, session=session)


def _request(inline: str | None = None) -> ScoringRequest:
    return ScoringRequest(system_prompt="sys", user_prompt="user", inline_data_base64=inline)


def _gemini_payload(args) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": "thinking"}, {"functionCall": {"name": SCORING_FUNCTION_NAME, "args": args}}]}}]}


def test_gemini_returns_function_call_arguments() -> None:
    session = FakeSession(FakeHTTPResponse(200, _gemini_payload(SCORING_ARGS)))
    result = _gemini(session).score(_request())

    assert result.arguments == SCORING_ARGS
    assert result.model == "gemini-test"
    call = session.calls[0]
    assert call["url"].endswith("/models/gemini-test:generateContent")
    assert call["params"] == {"key": "test-key"}
    assert call["json"]["system_instruction"] == {"parts": [{"text": "sys"}]}
    assert call["json"]["tool_config"]["function_calling_config"]["allowed_function_names"] == [SCORING_FUNCTION_NAME]


def test_gemini_parses_string_arguments() -> None:
    session = FakeSession(FakeHTTPResponse(200, _gemini_payload(json.dumps(SCORING_ARGS))))
    assert _gemini(session).score(_request()).arguments == SCORING_ARGS


def test_gemini_attaches_inline_pdf_part() -> None:
    session = FakeSession(FakeHTTPResponse(200, _gemini_payload(SCORING_ARGS)))
    _gemini(session).score(_request(inline="QUJD"))

    parts = session.calls[0]["json"]["contents"][0]["parts"]
    assert parts[0] == {"text": "user"}
    assert parts[1] == {"inline_data": {"mime_type": "application/pdf", "data": "QUJD"}}


def test_gemini_without_function_call_has_no_arguments() -> None:
    payload = {"candidates": [{"content": {"parts": [{"text": "free-form answer"}]}}]}
    session = FakeSession(FakeHTTPResponse(200, payload))
    assert _gemini(session).score(_request()).arguments is None


def test_gemini_error_status_is_preserved() -> None:
    session = FakeSession(FakeHTTPResponse(429, None, text="quota exceeded"))
    with pytest.raises(ScoringRequestFailed) as excinfo:
        _gemini(session).score(_request())
    assert excinfo.value.status_code == 429
    assert excinfo.value.details["body"] == "quota exceeded"


def test_gemini_transport_error_maps_to_bad_gateway() -> None:
    session = FakeSession(error=requests.ConnectionError("connection refused"))
    with pytest.raises(ScoringRequestFailed) as excinfo:
        _gemini(session).score(_request())
    assert excinfo.value.status_code == 502


def test_gemini_requires_credential() -> None:
    session = FakeSession()
    provider = GeminiScoringProvider(Settings(gemini_api_key=""), session=session)
    with pytest.raises(ScoringServiceMisconfigured):
        provider.score(_request())
    assert session.calls == []


class FakeCompletions:
    def __init__(self, response):
        self.response = response
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        return self.response


class FakeOpenAIResponse:
    def __init__(self, tool_calls):
        message = SimpleNamespace(content=None, tool_calls=tool_calls)
        self.choices = [SimpleNamespace(message=message)]

    def model_dump(self) -> dict:
        return {"id": "chatcmpl_1"}


def _openai(response) -> tuple[OpenAIScoringProvider, FakeCompletions]:
    completions = FakeCompletions(response)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    settings = Settings(openai_api_key="sk-test", openai_model_scoring="gpt-test")
    return OpenAIScoringProvider(settings, client=client), completions


def test_openai_reads_forced_tool_call() -> None:
    call = SimpleNamespace(function=SimpleNamespace(name=SCORING_FUNCTION_NAME, arguments=json.dumps(SCORING_ARGS)))
    provider, completions = _openai(FakeOpenAIResponse([call]))

    result = provider.score(_request(inline="QUJD"))

    assert result.arguments == SCORING_ARGS
    assert result.raw == {"id": "chatcmpl_1"}
    kwargs = completions.calls[0]
    assert kwargs["model"] == "gpt-test"
    assert kwargs["tool_choice"]["function"]["name"] == SCORING_FUNCTION_NAME
    user_content = kwargs["messages"][1]["content"]
    assert user_content[1]["file"]["file_data"] == "data:application/pdf;base64,QUJD"


def test_openai_without_tool_call_has_no_arguments() -> None:
    provider, _ = _openai(FakeOpenAIResponse(None))
    assert provider.score(_request()).arguments is None


def test_openai_requires_credential() -> None:
    provider = OpenAIScoringProvider(Settings(openai_api_key=""), client=SimpleNamespace())
    with pytest.raises(ScoringServiceMisconfigured):
        provider.score(_request())
