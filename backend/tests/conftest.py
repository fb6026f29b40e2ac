from __future__ import annotations

import os
import tempfile
from pathlib import Path

# Settings are read at import time; point everything at throwaway locations first.
_TMP = Path(tempfile.mkdtemp(prefix="docsafe-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP / 'docsafe-test.db'}"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["UPLOAD_DIR"] = str(_TMP / "uploads")
os.environ["LOG_DIR"] = str(_TMP / "logs")
os.environ["OCR_ENGINE"] = "mock"
os.environ["OCR_MAX_ATTEMPTS"] = "3"
os.environ["OCR_RETRY_DELAY_SECONDS"] = "0"
os.environ["IDENTITY_JWT_SECRET"] = "docsafe-test-secret-with-enough-bytes-0123"
os.environ["IDENTITY_JWT_ALGORITHM"] = "HS256"
os.environ["IDENTITY_JWKS_URL"] = ""
os.environ["IDENTITY_JWT_AUDIENCE"] = ""
os.environ["ENVIRONMENT"] = "test"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from docsafe.db.base import Base
from docsafe.db.session import AsyncSessionLocal, engine
from docsafe.main import app
import docsafe.models  # noqa: F401


@pytest_asyncio.fixture
async def db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    async with AsyncSessionLocal() as session:
        yield session
    # Connections are bound to this test's event loop
    await engine.dispose()


@pytest_asyncio.fixture
async def client(db):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
