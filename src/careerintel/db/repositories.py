from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import Select, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from careerintel.db.models import Application, ApplicationFile, Job, LegacyCandidate, Organization
from careerintel.types import CanonicalIdentity

logger = logging.getLogger(__name__)

CAREER_CARD_KIND = "career_card"

_SCHEMA_CACHE: dict[tuple[str, ...], bool] = {}


def reset_schema_cache() -> None:
    _SCHEMA_CACHE.clear()


@dataclass(slots=True)
class ApplicationRecord:
    application_id: int
    career_card: Any
    candidate_email: str
    candidate_name: str
    application_updated_at: str | None
    job_id: int | None
    role_description: str | None
    job_title: str | None
    org_id: int | None
    company_name: str | None
    company_description: str | None


def _isoformat(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _application_columns() -> Select:
    return (
        select(
            Application.id,
            Application.career_card,
            Application.candidate_email,
            Application.candidate_name,
            Application.updated_at,
            Job.id,
            Job.description,
            Job.title,
            Organization.id,
            Organization.name,
            Organization.company_description,
        )
        .select_from(Application)
        .outerjoin(Job, Job.id == Application.job_id)
        .outerjoin(Organization, Organization.id == Job.org_id)
    )


def _to_record(row: Any) -> ApplicationRecord:
    (
        application_id,
        career_card,
        candidate_email,
        candidate_name,
        updated_at,
        job_id,
        role_description,
        job_title,
        org_id,
        company_name,
        company_description,
    ) = row
    return ApplicationRecord(
        application_id=application_id,
        career_card=career_card,
        candidate_email=candidate_email or "",
        candidate_name=candidate_name or "",
        application_updated_at=_isoformat(updated_at),
        job_id=job_id,
        role_description=role_description,
        job_title=job_title,
        org_id=org_id,
        company_name=company_name,
        company_description=company_description,
    )


class ApplicationRepository:
    def __init__(self, session: Session):
        self.session = session

    def has_table(self, table_name: str) -> bool:
        key = (self._bind_key(), "table", table_name)
        if key not in _SCHEMA_CACHE:
            try:
                _SCHEMA_CACHE[key] = inspect(self.session.get_bind()).has_table(table_name)
            except SQLAlchemyError as exc:
                logger.warning("Schema probe failed for table %s: %s", table_name, exc)
                _SCHEMA_CACHE[key] = False
        return _SCHEMA_CACHE[key]

    def has_column(self, table_name: str, column_name: str) -> bool:
        key = (self._bind_key(), "column", table_name, column_name)
        if key not in _SCHEMA_CACHE:
            try:
                columns = inspect(self.session.get_bind()).get_columns(table_name)
                _SCHEMA_CACHE[key] = any(column["name"] == column_name for column in columns)
            except SQLAlchemyError as exc:
                logger.warning("Schema probe failed for %s.%s: %s", table_name, column_name, exc)
                _SCHEMA_CACHE[key] = False
        return _SCHEMA_CACHE[key]

    def fetch_application_for_candidate(self, identity: CanonicalIdentity) -> ApplicationRecord | None:
        if identity.source_application_id is not None:
            statement = _application_columns().where(Application.id == identity.source_application_id)
            row = self.session.execute(statement).first()
            return _to_record(row) if row else None

        if self.has_column("applications", "candidate_uuid"):
            statement = _application_columns().where(Application.candidate_uuid == identity.stable_id)
            row = self.session.execute(statement.limit(1)).first()
            if row:
                return _to_record(row)

        if self.has_table("candidates"):
            statement = (
                _application_columns()
                .join(LegacyCandidate, LegacyCandidate.application_id == Application.id)
                .where(LegacyCandidate.id == identity.stable_id)
            )
            row = self.session.execute(statement.limit(1)).first()
            if row:
                return _to_record(row)
        return None

    def latest_career_card_file(self, application_id: int) -> ApplicationFile | None:
        statement = (
            select(ApplicationFile)
            .where(
                ApplicationFile.application_id == application_id,
                ApplicationFile.kind == CAREER_CARD_KIND,
            )
            .order_by(ApplicationFile.id.desc())
            .limit(1)
        )
        return self.session.scalar(statement)

    def create_organization(self, name: str, company_description: str | None = None) -> Organization:
        org = Organization(name=name, company_description=company_description)
        self.session.add(org)
        self.session.commit()
        self.session.refresh(org)
        return org

    def create_job(self, *, title: str, description: str | None = None, org_id: int | None = None) -> Job:
        job = Job(title=title, description=description, org_id=org_id)
        self.session.add(job)
        self.session.commit()
        self.session.refresh(job)
        return job

    def create_application(
        self,
        *,
        job_id: int | None,
        candidate_name: str = "",
        candidate_email: str = "",
        career_card: Any = None,
        candidate_uuid: str | None = None,
    ) -> Application:
        application = Application(
            job_id=job_id,
            candidate_name=candidate_name,
            candidate_email=candidate_email.lower(),
            career_card=career_card,
            candidate_uuid=candidate_uuid,
        )
        self.session.add(application)
        self.session.commit()
        self.session.refresh(application)
        return application

    def add_application_file(
        self,
        *,
        application_id: int,
        storage_path: str,
        mime: str,
        original_name: str = "",
        size_bytes: int | None = None,
        kind: str = CAREER_CARD_KIND,
    ) -> ApplicationFile:
        row = ApplicationFile(
            application_id=application_id,
            kind=kind,
            original_name=original_name,
            mime=mime,
            size_bytes=size_bytes,
            storage_provider="local",
            storage_path=storage_path,
        )
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def link_legacy_candidate(self, *, candidate_id: str, application_id: int) -> LegacyCandidate:
        row = LegacyCandidate(id=candidate_id, application_id=application_id)
        self.session.add(row)
        self.session.commit()
        return row

    def _bind_key(self) -> str:
        return str(self.session.get_bind().url)
