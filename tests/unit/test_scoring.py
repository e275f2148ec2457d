import math

import pytest

from careerintel.config import Settings
from careerintel.errors import ScoringResponseInvalid, ScoringServiceMisconfigured
from careerintel.llm.providers import ProviderResult, build_scoring_provider
from careerintel.llm.scoring import (
    ScoringOrchestrator,
    build_scoring_request,
    coerce_score,
    normalize_category_scores,
    to_string_array,
)
from careerintel.types import CATEGORY_KEYS, ScoringContext


class RecordingProvider:
    name = "fake"

    def __init__(self, arguments):
        self.arguments = arguments
        self.requests = []

    def score(self, request):
        self.requests.append(request)
        return ProviderResult(provider=self.name, model="fake-model", arguments=self.arguments, raw={"ok": True})


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(-5, 0), (150, 100), (42.567, 42.57), (88.898, 88.9), ("73.5", 73.5), (0.125, 0.13)],
)
def test_scores_are_clamped_and_rounded(raw, expected) -> None:
    assert coerce_score(raw) == expected


@pytest.mark.parametrize("raw", [None, "abc", math.nan, math.inf, {}, [], True])
def test_unusable_scores_become_none(raw) -> None:
    assert coerce_score(raw) is None


def test_missing_categories_are_defaulted() -> None:
    normalized = normalize_category_scores({"technicalSkills": {"score": 88.898, "feedback": " Strong  match "}})

    assert list(normalized) == list(CATEGORY_KEYS)
    assert normalized["technicalSkills"].score == 88.9
    assert normalized["technicalSkills"].feedback == "Strong match"
    for key in ("experience", "culturalFit", "projectAlignment"):
        assert normalized[key].score is None
        assert normalized[key].feedback == ""


def test_non_dict_category_map_yields_defaults() -> None:
    normalized = normalize_category_scores("garbage")
    assert all(value.score is None for value in normalized.values())


def test_string_arrays_are_cleaned() -> None:
    assert to_string_array(["  One ", 123, "", None, "Two"]) == ["One", "Two"]
    assert to_string_array("not a list") == []
    assert to_string_array(["multi\n  line"]) == ["multi line"]


def test_request_moves_inline_pdf_into_attachment() -> None:
    context = ScoringContext(
        career_card_data={"format": "pdf_extracted_text", "mime": "application/pdf", "text": "Ada", "inline_data_base64": "QUJD"},
        company_description="",
        role_description="Engineer",
    )
    request = build_scoring_request(context)

    assert request.inline_data_base64 == "QUJD"
    assert request.inline_mime == "application/pdf"
    assert "QUJD" not in request.user_prompt
    assert '"inline_data_attached": true' in request.user_prompt
    assert "COMPANY DESCRIPTION:\n(not provided)" in request.user_prompt
    assert "ROLE DESCRIPTION:\nEngineer" in request.user_prompt


def test_structured_card_has_no_attachment() -> None:
    request = build_scoring_request(ScoringContext(career_card_data={"skills": ["python"]}))
    assert request.inline_data_base64 is None
    assert '"python"' in request.user_prompt


def test_orchestrator_normalizes_structured_call() -> None:
    provider = RecordingProvider(
        {
            "overallScore": 104,
            "categoryScores": {"experience": {"score": "61.234", "feedback": "ok"}},
            "strengths": [" Python ", 5],
            "improvements": ["", "Testing"],
            "overallFeedback": "  Good\nfit ",
        }
    )
    orchestrator = ScoringOrchestrator(Settings(), provider=provider)

    result = orchestrator.score(ScoringContext(career_card_data={"skills": ["python"]}))

    assert result.overall_score == 100
    assert result.category_scores["experience"].score == 61.23
    assert result.category_scores["technicalSkills"].score is None
    assert result.strengths == ["Python"]
    assert result.improvements == ["Testing"]
    assert result.overall_feedback == "Good fit"
    assert result.provider == "fake"
    assert result.model == "fake-model"
    assert len(provider.requests) == 1


def test_orchestrator_rejects_missing_structured_call() -> None:
    orchestrator = ScoringOrchestrator(Settings(), provider=RecordingProvider(None))
    with pytest.raises(ScoringResponseInvalid):
        orchestrator.score(ScoringContext(career_card_data={"skills": []}))


def test_unknown_provider_is_misconfiguration() -> None:
    with pytest.raises(ScoringServiceMisconfigured):
        build_scoring_provider(Settings(scoring_provider="mystery"))
