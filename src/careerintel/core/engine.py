from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from careerintel.config import Settings, get_settings
from careerintel.core.context import CandidateContextBuilder
from careerintel.core.hashing import is_report_fresh
from careerintel.core.identity import resolve_candidate_identifier
from careerintel.llm.scoring import ScoringOrchestrator
from careerintel.reports.store import ReportStore, build_report_store
from careerintel.types import CanonicalIdentity, EnsureReportResult, StoredReport

logger = logging.getLogger(__name__)


class CareerReportEngine:
    """Resolve a candidate, decide whether the stored report is still valid, and rescore when it is not.

    Concurrent calls for the same candidate may both miss the cache and both rescore; the
    store write is an upsert keyed by the stable id, so the last writer wins and no
    duplicate rows appear.
    """

    def __init__(
        self,
        session: Session,
        *,
        settings: Settings | None = None,
        scorer: ScoringOrchestrator | None = None,
        store: ReportStore | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.contexts = CandidateContextBuilder(session, settings=self.settings)
        self.scorer = scorer or ScoringOrchestrator(self.settings)
        self._store = store

    @property
    def store(self) -> ReportStore:
        if self._store is None:
            self._store = build_report_store(self.settings, self.session)
        return self._store

    def resolve(self, candidate_id: str | int | None) -> CanonicalIdentity:
        return resolve_candidate_identifier(candidate_id, namespace=self.settings.candidate_namespace_uuid)

    def ensure_report(self, candidate_id: str | int | None, *, force_refresh: bool = False) -> EnsureReportResult:
        identity = self.resolve(candidate_id)
        context = self.contexts.build(identity)
        existing = self.store.fetch(identity.stable_id)

        if is_report_fresh(existing, context.card_hash, force_refresh=force_refresh):
            logger.info("Career card report cache hit candidate=%s", identity.stable_id)
            return EnsureReportResult(status="cached", report=existing)

        scoring = self.scorer.score(context.scoring_context())
        stored = self.store.upsert(identity.stable_id, scoring, context)
        status = "refreshed" if existing else "created"
        logger.info(
            "Career card report %s candidate=%s application_id=%s",
            status,
            identity.stable_id,
            context.application_id,
        )
        return EnsureReportResult(status=status, report=stored)

    def fetch_report(self, candidate_id: str | int | None) -> StoredReport | None:
        identity = self.resolve(candidate_id)
        return self.store.fetch(identity.stable_id)
