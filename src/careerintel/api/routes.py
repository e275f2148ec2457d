from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from careerintel.api.deps import get_engine
from careerintel.api.schemas import CandidateIdentityResponse, CareerCardReportRequest
from careerintel.core.engine import CareerReportEngine
from careerintel.errors import CandidateIdRequired, CandidateNotFound, CareerCardMissing, ReportNotFound
from careerintel.types import EnsureReportResult, StoredReport

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/career-card-reports", tags=["career-card-reports"])


@router.post("", response_model=EnsureReportResult)
def ensure_report(
    payload: CareerCardReportRequest,
    engine: CareerReportEngine = Depends(get_engine),
) -> EnsureReportResult:
    candidate_id = payload.resolved_candidate_id
    if candidate_id is None:
        raise CandidateIdRequired()
    return engine.ensure_report(candidate_id, force_refresh=payload.wants_refresh)


@router.get("/{candidate_id}", response_model=StoredReport)
def get_report(
    candidate_id: str,
    ensure: bool = Query(True),
    force: bool = Query(False),
    force_refresh: bool = Query(False, alias="forceRefresh"),
    engine: CareerReportEngine = Depends(get_engine),
):
    report: StoredReport | None = None

    if ensure:
        try:
            ensured = engine.ensure_report(candidate_id, force_refresh=force or force_refresh)
            report = ensured.report
            logger.info("Ensure result candidate=%s status=%s", candidate_id, ensured.status)
        except CareerCardMissing as exc:
            logger.warning("Ensure failed candidate=%s error=%s", candidate_id, exc.code)
            return JSONResponse(exc.to_payload(), status_code=exc.status_code)
        except CandidateNotFound as exc:
            logger.warning("Ensure failed candidate=%s error=%s", candidate_id, exc.code)

    if report is None:
        report = engine.fetch_report(candidate_id)
    if report is None:
        raise ReportNotFound(details={"candidate_id": candidate_id})
    return report


@router.get("/{candidate_id}/identity", response_model=CandidateIdentityResponse)
def get_identity(
    candidate_id: str,
    engine: CareerReportEngine = Depends(get_engine),
) -> CandidateIdentityResponse:
    identity = engine.resolve(candidate_id)
    return CandidateIdentityResponse(
        candidate_id=identity.raw,
        stable_id=identity.stable_id,
        source_application_id=identity.source_application_id,
    )
