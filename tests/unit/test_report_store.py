from __future__ import annotations

import json
from datetime import datetime

import pytest

from careerintel.config import Settings
from careerintel.errors import ReportStoreMisconfigured, ReportStoreRequestFailed
from careerintel.reports.store import SupabaseReportStore, build_report_payload, normalize_report_row
from careerintel.types import CandidateContext, CategoryScore, ScoringResult

STABLE_ID = "5e0152a3-09a2-4ffe-9390-3a4d19d1ba4a"


class FakeHTTPResponse:
    def __init__(self, status_code: int, payload=None, text: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.text = text or json.dumps(payload)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: list[dict] = []

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        return self.responses.pop(0)


def _settings(**overrides) -> Settings:
    values = {"supabase_url": "https://demo.supabase.co/", "supabase_service_role_key": "service-key"}
    values.update(overrides)
    return Settings(**values)


def _row(**overrides) -> dict:
    row = {
        "id": 9,
        "candidate_id": STABLE_ID,
        "overall_score": "77.456",
        "category_scores": json.dumps({"technicalSkills": {"score": 80, "feedback": "Good"}}),
        "strengths": json.dumps(["Python"]),
        "improvements": ["Testing"],
        "overall_feedback": "Fine",
        "raw_report": json.dumps({"metadata": {"card_hash": "abc123"}}),
        "created_at": "2024-05-01T10:00:00+00:00",
        "updated_at": "2024-05-02T10:00:00+00:00",
    }
    row.update(overrides)
    return row


def _scoring() -> ScoringResult:
    return ScoringResult(
        overall_score=70.0,
        category_scores={"technicalSkills": CategoryScore(score=70.0, feedback="ok")},
        strengths=["Python"],
        improvements=[],
        overall_feedback="Fine",
        scoring={"overallScore": 70},
        provider="gemini",
        model="gemini-test",
    )


def _context() -> CandidateContext:
    return CandidateContext(
        application_id=42,
        card_hash="hash-1",
        job_id=3,
        org_id=5,
        job_title="Engineer",
        company_name="Acme",
    )


def test_rows_with_string_json_columns_are_normalized() -> None:
    report = normalize_report_row(_row())

    assert report.overall_score == 77.46
    assert report.category_scores["technicalSkills"].score == 80
    assert report.category_scores["culturalFit"].score is None
    assert report.strengths == ["Python"]
    assert report.improvements == ["Testing"]
    assert report.metadata_hash == "abc123"
    assert report.generated_at == "2024-05-01T10:00:00+00:00"


def test_rows_with_native_columns_are_normalized() -> None:
    report = normalize_report_row(
        _row(
            category_scores={"experience": {"score": 55, "feedback": "ok"}},
            strengths=["A"],
            raw_report={"metadata": {"card_hash": "h"}},
            generated_at="2024-06-01T00:00:00+00:00",
        )
    )
    assert report.category_scores["experience"].score == 55
    assert report.strengths == ["A"]
    assert report.metadata_hash == "h"
    assert report.generated_at == "2024-06-01T00:00:00+00:00"


def test_unparsable_raw_report_has_no_hash() -> None:
    report = normalize_report_row(_row(raw_report="{broken"))
    assert report.raw_report is None
    assert report.metadata_hash is None


def test_payload_embeds_hash_and_provenance() -> None:
    payload = build_report_payload(STABLE_ID, _scoring(), _context())

    metadata = payload["raw_report"]["metadata"]
    assert payload["candidate_id"] == STABLE_ID
    assert metadata["card_hash"] == "hash-1"
    assert metadata["application_id"] == 42
    assert metadata["job_id"] == 3
    assert metadata["org_id"] == 5
    assert metadata["company_name"] == "Acme"
    assert metadata["job_title"] == "Engineer"
    assert payload["raw_report"]["model"] == "gemini-test"


def test_fetch_filters_by_candidate_id() -> None:
    session = FakeSession(FakeHTTPResponse(200, [_row()]))
    store = SupabaseReportStore(_settings(), session=session)

    report = store.fetch(STABLE_ID)

    assert report.candidate_id == STABLE_ID
    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "https://demo.supabase.co/rest/v1/career_card_reports"
    assert call["params"]["candidate_id"] == f"eq.{STABLE_ID}"
    assert call["headers"]["Authorization"] == "Bearer service-key"


def test_fetch_returns_none_for_empty_result() -> None:
    store = SupabaseReportStore(_settings(), session=FakeSession(FakeHTTPResponse(200, [])))
    assert store.fetch(STABLE_ID) is None


def test_upsert_merges_on_candidate_id() -> None:
    session = FakeSession(FakeHTTPResponse(201, [_row(raw_report={"metadata": {"card_hash": "hash-1"}})]))
    store = SupabaseReportStore(_settings(), session=session)

    report = store.upsert(STABLE_ID, _scoring(), _context())

    assert report.metadata_hash == "hash-1"
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["params"] == {"on_conflict": "candidate_id"}
    assert "resolution=merge-duplicates" in call["headers"]["Prefer"]
    assert call["json"]["raw_report"]["metadata"]["card_hash"] == "hash-1"


def test_upsert_without_representation_reads_back() -> None:
    session = FakeSession(FakeHTTPResponse(201, []), FakeHTTPResponse(200, [_row()]))
    store = SupabaseReportStore(_settings(), session=session)

    report = store.upsert(STABLE_ID, _scoring(), _context())

    assert report.id == 9
    assert [call["method"] for call in session.calls] == ["POST", "GET"]


def test_upstream_failure_keeps_status_and_body() -> None:
    session = FakeSession(FakeHTTPResponse(503, None, text="unavailable"))
    store = SupabaseReportStore(_settings(), session=session)

    with pytest.raises(ReportStoreRequestFailed) as excinfo:
        store.fetch(STABLE_ID)
    assert excinfo.value.status_code == 503
    assert excinfo.value.details["body"] == "unavailable"


def test_missing_credentials_are_misconfiguration() -> None:
    store = SupabaseReportStore(_settings(supabase_service_role_key=""), session=FakeSession())
    with pytest.raises(ReportStoreMisconfigured) as excinfo:
        store.fetch(STABLE_ID)
    assert excinfo.value.details == {"missing_url": False, "missing_key": True}


def test_read_path_cleans_string_arrays() -> None:
    report = normalize_report_row(_row(strengths=["  Clear   writing ", "", 7, "   "], improvements='["Docs\\n"]'))

    assert report.strengths == ["Clear writing"]
    assert report.improvements == ["Docs"]


def test_naive_datetimes_are_read_as_utc() -> None:
    report = normalize_report_row(_row(created_at=datetime(2024, 5, 1, 10, 0), generated_at=None))

    assert report.created_at == "2024-05-01T10:00:00+00:00"
    assert report.generated_at == "2024-05-01T10:00:00+00:00"
