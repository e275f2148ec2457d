from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

EnsureStatus = Literal["cached", "refreshed", "created"]
ScoringProviderName = Literal["gemini", "openai"]
CareerCardFormat = Literal["pdf_extracted_text", "pdf_attachment"]

CATEGORY_KEYS: tuple[str, ...] = (
    "technicalSkills",
    "experience",
    "culturalFit",
    "projectAlignment",
)


class CanonicalIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    stable_id: str
    source_application_id: int | None = None
    raw: str = ""


class CareerCardDocument(BaseModel):
    format: CareerCardFormat
    filename: str = ""
    mime: str = "application/pdf"
    text: str = ""
    approx_characters: int | None = None
    size_bytes: int = 0
    inline_data_base64: str | None = None
    inline_data_truncated: bool = False
    source_path: str = ""
    extracted_at: str = ""
    extraction_error: str | None = None


class ScoringContext(BaseModel):
    career_card_data: Any = None
    company_description: str = ""
    role_description: str = ""


class CandidateContext(BaseModel):
    application_id: int | None = None
    candidate_name: str = ""
    candidate_email: str = ""
    career_card_data: Any = None
    company_description: str = ""
    role_description: str = ""
    job_title: str = ""
    company_name: str = ""
    card_hash: str
    job_id: int | None = None
    org_id: int | None = None
    application_updated_at: str | None = None

    def scoring_context(self) -> ScoringContext:
        return ScoringContext(
            career_card_data=self.career_card_data,
            company_description=self.company_description,
            role_description=self.role_description,
        )


class CategoryScore(BaseModel):
    score: float | None = None
    feedback: str = ""


class ScoringResult(BaseModel):
    overall_score: float | None = None
    category_scores: dict[str, CategoryScore] = Field(default_factory=dict)
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    overall_feedback: str = ""
    scoring: dict[str, Any] = Field(default_factory=dict)
    provider: str = ""
    model: str = ""
    provider_response: dict[str, Any] = Field(default_factory=dict)


class StoredReport(BaseModel):
    id: Any = None
    candidate_id: str
    overall_score: float | None = None
    category_scores: dict[str, CategoryScore] = Field(default_factory=dict)
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    overall_feedback: str = ""
    raw_report: dict[str, Any] | None = None
    generated_at: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    metadata_hash: str | None = None


class EnsureReportResult(BaseModel):
    status: EnsureStatus
    report: StoredReport
