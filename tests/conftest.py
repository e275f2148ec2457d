from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TEST_DATA_DIR = Path(tempfile.mkdtemp(prefix="careerintel-tests-"))
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DATA_DIR / 'careerintel.db'}"
os.environ["DATA_DIR"] = str(_TEST_DATA_DIR)
os.environ["UPLOAD_DIR"] = str(_TEST_DATA_DIR / "uploads")
os.environ["REPORT_STORE_BACKEND"] = "database"
os.environ["GEMINI_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = ""

import pytest  # noqa: E402

from careerintel.db import models  # noqa: E402,F401
from careerintel.db.base import Base  # noqa: E402
from careerintel.db.repositories import reset_schema_cache  # noqa: E402
from careerintel.db.session import engine  # noqa: E402


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    reset_schema_cache()
    yield
