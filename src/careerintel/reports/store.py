from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any, Protocol

import requests
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from careerintel.config import Settings, get_settings
from careerintel.core.text import parse_json_safe
from careerintel.db.base import utcnow
from careerintel.db.models import CareerCardReportRow
from careerintel.errors import ReportStoreMisconfigured, ReportStoreRequestFailed
from careerintel.llm.scoring import coerce_score, normalize_category_scores, to_string_array
from careerintel.types import CandidateContext, ScoringResult, StoredReport

logger = logging.getLogger(__name__)


class ReportStore(Protocol):
    def fetch(self, stable_id: str) -> StoredReport | None: ...

    def upsert(self, stable_id: str, scoring: ScoringResult, context: CandidateContext) -> StoredReport: ...


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    parsed = parse_json_safe(value)
    return parsed if isinstance(parsed, list) else []


def _as_dict(value: Any) -> dict[str, Any] | None:
    if isinstance(value, dict):
        return value
    parsed = parse_json_safe(value)
    return parsed if isinstance(parsed, dict) else None


def _timestamp(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        # SQLite hands back naive values for timezone-aware columns
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC).isoformat()
    return str(value)


def normalize_report_row(row: dict[str, Any] | None) -> StoredReport | None:
    """Accept JSON columns either as native structures or as JSON-encoded strings."""
    if not row:
        return None

    raw_report = _as_dict(row.get("raw_report"))
    metadata = (raw_report or {}).get("metadata")
    metadata_hash = metadata.get("card_hash") if isinstance(metadata, dict) else None

    return StoredReport(
        id=row.get("id"),
        candidate_id=str(row.get("candidate_id") or ""),
        overall_score=coerce_score(row.get("overall_score")),
        category_scores=normalize_category_scores(_as_dict(row.get("category_scores")) or {}),
        strengths=to_string_array(_as_list(row.get("strengths"))),
        improvements=to_string_array(_as_list(row.get("improvements"))),
        overall_feedback=row.get("overall_feedback") or "",
        raw_report=raw_report,
        generated_at=_timestamp(row.get("generated_at") or row.get("created_at")),
        created_at=_timestamp(row.get("created_at")),
        updated_at=_timestamp(row.get("updated_at")),
        metadata_hash=metadata_hash or None,
    )


def build_report_payload(stable_id: str, scoring: ScoringResult, context: CandidateContext) -> dict[str, Any]:
    generated_at = datetime.now(UTC).isoformat()
    return {
        "candidate_id": stable_id,
        "overall_score": scoring.overall_score,
        "category_scores": {key: value.model_dump() for key, value in scoring.category_scores.items()},
        "strengths": list(scoring.strengths),
        "improvements": list(scoring.improvements),
        "overall_feedback": scoring.overall_feedback,
        "raw_report": {
            "source": scoring.provider,
            "model": scoring.model,
            "scoring": scoring.scoring,
            "metadata": {
                "card_hash": context.card_hash,
                "generated_at": generated_at,
                "candidate_identifier": context.application_id,
                "application_id": context.application_id,
                "job_id": context.job_id,
                "org_id": context.org_id,
                "company_name": context.company_name,
                "job_title": context.job_title,
            },
            "provider_response": scoring.provider_response,
        },
        "generated_at": generated_at,
    }


class SupabaseReportStore:
    def __init__(self, settings: Settings | None = None, session: requests.Session | None = None):
        self.settings = settings or get_settings()
        self.session = session or requests.Session()

    @property
    def table_url(self) -> str:
        return f"{self.settings.supabase_rest_base}/{self.settings.supabase_report_table}"

    def fetch(self, stable_id: str) -> StoredReport | None:
        self._ensure_config()
        response = self._request(
            "get",
            params={"select": "*", "candidate_id": f"eq.{stable_id}", "limit": "1"},
        )
        return normalize_report_row(self._first_row(response))

    def upsert(self, stable_id: str, scoring: ScoringResult, context: CandidateContext) -> StoredReport:
        self._ensure_config()
        payload = build_report_payload(stable_id, scoring, context)
        response = self._request(
            "post",
            params={"on_conflict": "candidate_id"},
            json=payload,
            prefer="return=representation,resolution=merge-duplicates",
        )
        stored = normalize_report_row(self._first_row(response))
        if stored is not None:
            return stored

        stored = self.fetch(stable_id)
        if stored is None:
            raise ReportStoreRequestFailed(details={"reason": "upsert returned no row", "candidate_id": stable_id})
        return stored

    def _ensure_config(self) -> None:
        missing_url = not self.settings.supabase_rest_base
        missing_key = not self.settings.supabase_service_role_key
        if missing_url or missing_key:
            raise ReportStoreMisconfigured(details={"missing_url": missing_url, "missing_key": missing_key})

    def _headers(self, prefer: str = "return=representation") -> dict[str, str]:
        key = self.settings.supabase_service_role_key
        return {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Prefer": prefer,
        }

    def _request(self, method: str, *, params: dict[str, str], json: Any = None, prefer: str | None = None):
        headers = self._headers(prefer) if prefer else self._headers()
        try:
            response = self.session.request(
                method.upper(),
                self.table_url,
                params=params,
                json=json,
                headers=headers,
                timeout=self.settings.supabase_timeout_sec,
            )
        except requests.RequestException as exc:
            logger.warning("Report store %s failed error=%s", method, exc)
            raise ReportStoreRequestFailed(details={"operation": method, "error": str(exc)}) from exc

        if not response.ok:
            logger.warning("Report store %s failed status=%s", method, response.status_code)
            raise ReportStoreRequestFailed(
                status_code=response.status_code,
                details={"operation": method, "body": response.text},
            )
        return response

    @staticmethod
    def _first_row(response: Any) -> dict[str, Any] | None:
        try:
            rows = response.json()
        except ValueError:
            return None
        if isinstance(rows, list) and rows and isinstance(rows[0], dict):
            return rows[0]
        return None


_UPSERT_DIALECTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}


class DatabaseReportStore:
    """Local ``career_card_reports`` table; writes merge on ``candidate_id`` so the last writer wins."""

    def __init__(self, session: Session):
        self.session = session

    def fetch(self, stable_id: str) -> StoredReport | None:
        row = self._get(stable_id)
        return normalize_report_row(self._to_dict(row)) if row else None

    def upsert(self, stable_id: str, scoring: ScoringResult, context: CandidateContext) -> StoredReport:
        payload = build_report_payload(stable_id, scoring, context)
        payload["generated_at"] = datetime.fromisoformat(payload["generated_at"])
        payload["updated_at"] = utcnow()

        insert = _UPSERT_DIALECTS.get(self.session.get_bind().dialect.name)
        if insert is not None:
            self._merge(insert, payload)
        else:
            self._update_or_insert(stable_id, payload)

        row = self._get(stable_id)
        if row is None:
            raise ReportStoreRequestFailed(details={"reason": "upsert returned no row", "candidate_id": stable_id})
        return normalize_report_row(self._to_dict(row))

    def _merge(self, insert, payload: dict[str, Any]) -> None:
        statement = insert(CareerCardReportRow).values(created_at=utcnow(), **payload)
        statement = statement.on_conflict_do_update(
            index_elements=[CareerCardReportRow.candidate_id],
            set_={key: statement.excluded[key] for key in payload if key != "candidate_id"},
        )
        try:
            self.session.execute(statement)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def _update_or_insert(self, stable_id: str, payload: dict[str, Any]) -> None:
        row = self._get(stable_id)
        if row is None:
            self.session.add(CareerCardReportRow(**payload))
            try:
                self.session.commit()
                return
            except IntegrityError:
                # another writer inserted first; overwrite its row
                self.session.rollback()
                row = self._get(stable_id)
                if row is None:
                    raise
        for key, value in payload.items():
            setattr(row, key, value)
        self.session.commit()

    def _get(self, stable_id: str) -> CareerCardReportRow | None:
        return self.session.scalar(
            select(CareerCardReportRow)
            .where(CareerCardReportRow.candidate_id == stable_id)
            .execution_options(populate_existing=True)
        )

    @staticmethod
    def _to_dict(row: CareerCardReportRow) -> dict[str, Any]:
        return {
            "id": row.id,
            "candidate_id": row.candidate_id,
            "overall_score": row.overall_score,
            "category_scores": row.category_scores,
            "strengths": row.strengths,
            "improvements": row.improvements,
            "overall_feedback": row.overall_feedback,
            "raw_report": row.raw_report,
            "generated_at": row.generated_at,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }


def build_report_store(settings: Settings, session: Session) -> ReportStore:
    if settings.report_store_backend == "database":
        return DatabaseReportStore(session)
    if settings.report_store_backend == "supabase":
        return SupabaseReportStore(settings)
    raise ReportStoreMisconfigured(
        f"Unsupported REPORT_STORE_BACKEND='{settings.report_store_backend}'",
        details={"backend": settings.report_store_backend},
    )
