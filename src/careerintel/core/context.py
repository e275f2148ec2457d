from __future__ import annotations

import base64
import json
import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from careerintel.config import Settings, get_settings
from careerintel.core.hashing import compute_card_hash
from careerintel.core.pdf_text import decode_plain_text, extract_text_from_pdf
from careerintel.core.storage import resolve_storage_path
from careerintel.core.text import clean_text, parse_json_safe
from careerintel.db.models import ApplicationFile
from careerintel.db.repositories import ApplicationRecord, ApplicationRepository
from careerintel.errors import CandidateNotFound, CareerCardMissing
from careerintel.types import CandidateContext, CanonicalIdentity, CareerCardDocument

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
JSON_MIME = "application/json"

EXTRACTION_FAILED_TEXT = "PDF text extraction failed automatically; refer to inline_data if available."
EXTRACTION_ERROR_TEXT = "PDF text extraction threw an error; raw bytes attached."


class CandidateContextBuilder:
    def __init__(self, session: Session, *, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.repo = ApplicationRepository(session)

    def build(self, identity: CanonicalIdentity) -> CandidateContext:
        application = self.repo.fetch_application_for_candidate(identity)
        if application is None:
            raise CandidateNotFound(details={"candidate_id": identity.raw or identity.stable_id})

        career_card_data = self.load_career_card(application)
        if not career_card_data:
            logger.warning(
                "Missing career card data after file scan application_id=%s",
                application.application_id,
            )
            raise CareerCardMissing(details={"application_id": application.application_id})

        company_description = clean_text(application.company_description)
        role_parts = [clean_text(application.role_description), clean_text(application.job_title)]
        role_description = "\n".join(part for part in role_parts if part)

        card_hash = compute_card_hash(
            career_card_data,
            company_description=company_description,
            role_description=role_description,
        )

        return CandidateContext(
            application_id=application.application_id,
            candidate_name=application.candidate_name,
            candidate_email=application.candidate_email,
            career_card_data=career_card_data,
            company_description=company_description,
            role_description=role_description,
            job_title=application.job_title or "",
            company_name=application.company_name or "",
            card_hash=card_hash,
            job_id=application.job_id,
            org_id=application.org_id,
            application_updated_at=application.application_updated_at,
        )

    def load_career_card(self, application: ApplicationRecord) -> Any:
        if application.career_card:
            return parse_json_safe(application.career_card)

        file_row = self.repo.latest_career_card_file(application.application_id)
        if file_row is None:
            return None

        resolved = resolve_storage_path(file_row.storage_path, self.settings)
        if resolved is None:
            logger.warning(
                "Career card file missing application_id=%s storage_path=%s",
                application.application_id,
                file_row.storage_path,
            )
            return None

        if file_row.mime == JSON_MIME:
            try:
                return json.loads(resolved.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
                logger.warning("Failed to parse stored JSON career card %s: %s", resolved, exc)
                return None

        if file_row.mime == PDF_MIME:
            try:
                data = resolved.read_bytes()
            except OSError as exc:
                logger.warning("Failed to read PDF career card %s: %s", resolved, exc)
                return None
            return self.pdf_document(file_row, data).model_dump()

        logger.info("Unsupported career card mime=%s application_id=%s", file_row.mime, application.application_id)
        return None

    def pdf_document(self, file_row: ApplicationFile, data: bytes) -> CareerCardDocument:
        max_chars = self.settings.max_pdf_text_chars
        inline_allowed = len(data) <= self.settings.max_inline_pdf_bytes
        common = {
            "filename": file_row.original_name,
            "mime": file_row.mime,
            "size_bytes": int(file_row.size_bytes or len(data)),
            "source_path": file_row.storage_path,
            "extracted_at": datetime.now(UTC).isoformat(),
            "inline_data_base64": base64.b64encode(data).decode("ascii") if inline_allowed else None,
            "inline_data_truncated": not inline_allowed,
        }

        try:
            text = extract_text_from_pdf(data, max_chars=max_chars) or decode_plain_text(data, max_chars=max_chars)
        except Exception as exc:
            logger.warning("Failed to extract PDF text from %s: %s", file_row.storage_path, exc)
            return CareerCardDocument(
                format="pdf_attachment",
                text=EXTRACTION_ERROR_TEXT,
                approx_characters=None,
                extraction_error=str(exc),
                **common,
            )

        return CareerCardDocument(
            format="pdf_extracted_text" if text else "pdf_attachment",
            text=text or EXTRACTION_FAILED_TEXT,
            approx_characters=len(text) if text else None,
            **common,
        )
