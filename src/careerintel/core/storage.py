from __future__ import annotations

import logging
import os
from pathlib import Path

from careerintel.config import Settings

logger = logging.getLogger(__name__)


def candidate_paths(storage_path: str, *, upload_dir: Path, roots: list[Path], cwd: Path | None = None) -> list[Path]:
    base = cwd or Path.cwd()
    stored = Path(storage_path)
    attempts: list[Path] = []
    if stored.is_absolute():
        attempts.append(stored)
    attempts.append(base / stored)
    for root in roots:
        attempts.append(root / stored)

    # uploads that were moved keep their basename
    attempts.append(upload_dir / stored.name)
    for root in roots:
        attempts.append(root / "uploads" / stored.name)

    unique: list[Path] = []
    for attempt in attempts:
        resolved = attempt.resolve()
        if resolved not in unique:
            unique.append(resolved)
    return unique


def resolve_storage_path(storage_path: str | None, settings: Settings) -> Path | None:
    if not storage_path:
        return None

    attempts = candidate_paths(
        storage_path,
        upload_dir=settings.upload_dir,
        roots=settings.storage_root_list,
    )
    for attempt in attempts:
        if attempt.is_file() and os.access(attempt, os.R_OK):
            return attempt

    logger.warning(
        "Unable to resolve storage path %s (tried %s)",
        storage_path,
        ", ".join(str(path) for path in attempts),
    )
    return None
