from __future__ import annotations

from pathlib import Path

from careerintel.config import get_settings
from careerintel.db.base import Base
from careerintel.db.session import engine
from careerintel.db import models  # noqa: F401
from careerintel.db.repositories import reset_schema_cache


def ensure_data_directories() -> None:
    settings = get_settings()
    paths: list[Path] = [settings.data_dir, settings.upload_dir]
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def init_database() -> dict[str, list[str]]:
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)
    reset_schema_cache()
    return {"tables": sorted(Base.metadata.tables)}
