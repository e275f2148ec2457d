from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CareerCardReportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    candidate_id: str | int | None = None
    candidate_id_camel: str | int | None = Field(default=None, alias="candidateId")
    id: str | int | None = None
    force: bool = False
    refresh: bool = False
    force_refresh: bool = Field(default=False, alias="forceRefresh")

    @property
    def resolved_candidate_id(self) -> str | int | None:
        for value in (self.candidate_id, self.candidate_id_camel, self.id):
            if value is not None and str(value).strip():
                return value
        return None

    @property
    def wants_refresh(self) -> bool:
        return self.force or self.refresh or self.force_refresh


class CandidateIdentityResponse(BaseModel):
    candidate_id: str
    stable_id: str
    source_application_id: int | None = None
