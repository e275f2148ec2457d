from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from careerintel.core.engine import CareerReportEngine
from careerintel.db.session import get_db_session


def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


def get_engine(db: Session = Depends(get_db)) -> CareerReportEngine:
    return CareerReportEngine(db)
