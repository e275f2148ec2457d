from __future__ import annotations

import re
import uuid

from careerintel.errors import CandidateIdRequired, InvalidCandidateId, InvalidCandidateNamespace
from careerintel.types import CanonicalIdentity

_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
_SEQUENTIAL_PATTERN = re.compile(r"^[0-9]+$")


def is_uuid(value: str) -> bool:
    return bool(_UUID_PATTERN.match(value))


def application_stable_id(application_id: int, namespace: str) -> str:
    """Derive the stable candidate id for a local application id (uuid5, no registry)."""
    if not is_uuid(namespace.strip()):
        raise InvalidCandidateNamespace(details={"namespace": namespace})
    return str(uuid.uuid5(uuid.UUID(namespace.strip()), f"application:{application_id}"))


def resolve_candidate_identifier(raw: str | int | None, *, namespace: str) -> CanonicalIdentity:
    trimmed = "" if raw is None else str(raw).strip()
    if not trimmed:
        raise CandidateIdRequired()

    if is_uuid(trimmed):
        return CanonicalIdentity(stable_id=trimmed, source_application_id=None, raw=trimmed)

    if not _SEQUENTIAL_PATTERN.match(trimmed):
        raise InvalidCandidateId(details={"candidate_id": trimmed})
    application_id = int(trimmed)
    if application_id <= 0:
        raise InvalidCandidateId(details={"candidate_id": trimmed})

    return CanonicalIdentity(
        stable_id=application_stable_id(application_id, namespace),
        source_application_id=application_id,
        raw=trimmed,
    )
