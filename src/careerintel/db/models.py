from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from careerintel.db.base import Base, TimestampMixin


class Organization(TimestampMixin, Base):
    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    company_description: Mapped[str | None] = mapped_column(Text, nullable=True)


class Job(TimestampMixin, Base):
    __tablename__ = "jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int | None] = mapped_column(ForeignKey("organizations.id", ondelete="SET NULL"), index=True)
    title: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class Application(TimestampMixin, Base):
    __tablename__ = "applications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    job_id: Mapped[int | None] = mapped_column(ForeignKey("jobs.id", ondelete="SET NULL"), index=True)
    candidate_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    candidate_email: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    career_card: Mapped[Any | None] = mapped_column(JSON, nullable=True)
    candidate_uuid: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)


class ApplicationFile(TimestampMixin, Base):
    __tablename__ = "application_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"), index=True
    )
    kind: Mapped[str] = mapped_column(String(40), nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    mime: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    size_bytes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    storage_provider: Mapped[str] = mapped_column(String(40), default="local", nullable=False)
    storage_path: Mapped[str] = mapped_column(String(500), default="", nullable=False)


class LegacyCandidate(Base):
    __tablename__ = "candidates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"), index=True
    )


class CareerCardReportRow(TimestampMixin, Base):
    __tablename__ = "career_card_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    candidate_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    overall_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    category_scores: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    strengths: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    improvements: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    overall_feedback: Mapped[str] = mapped_column(Text, default="", nullable=False)
    raw_report: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    generated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
