# tests/conftest.py
from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TMP = Path(tempfile.mkdtemp(prefix="kosan-tests-"))

# Must be set before anything imports kosan.config.
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TMP / 'kosan.db'}")
os.environ.setdefault("STORAGE_DIR", str(_TMP / "storage"))
os.environ.setdefault("PUBLIC_BASE_URL", "http://testserver/storage")
os.environ.setdefault("AUTH_MODE", "dev")
os.environ.setdefault("APP_ENV", "local")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from kosan.db import Base, engine  # noqa: E402
from kosan import models  # noqa: E402,F401
from kosan.main import create_app  # noqa: E402

ADMIN_HEADERS = {"X-Admin-Email": "admin@kosan.local"}


@pytest.fixture(autouse=True)
def _reset_tables():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app):
    return TestClient(app)
