from __future__ import annotations

from typing import Any


class CareerIntelError(Exception):
    """Base error carrying a stable error code and an HTTP-equivalent status."""

    code = "career_intel_error"
    status_code = 500

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message or self.code)
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class CandidateIdRequired(CareerIntelError):
    code = "candidate_id_required"
    status_code = 400


class InvalidCandidateId(CareerIntelError):
    code = "invalid_candidate_id"
    status_code = 400


class InvalidCandidateNamespace(CareerIntelError):
    code = "invalid_candidate_namespace"
    status_code = 500


class CandidateNotFound(CareerIntelError):
    code = "candidate_not_found"
    status_code = 404


class CareerCardMissing(CareerIntelError):
    code = "career_card_missing"
    status_code = 409


class ReportNotFound(CareerIntelError):
    code = "report_not_found"
    status_code = 404


class ScoringServiceMisconfigured(CareerIntelError):
    code = "scoring_config_missing"
    status_code = 500


class ScoringRequestFailed(CareerIntelError):
    code = "scoring_request_failed"
    status_code = 502


class ScoringResponseInvalid(CareerIntelError):
    code = "scoring_missing_tool_call"
    status_code = 502


class ReportStoreMisconfigured(CareerIntelError):
    code = "report_store_config_missing"
    status_code = 500


class ReportStoreRequestFailed(CareerIntelError):
    code = "report_store_request_failed"
    status_code = 502
