from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["OPENROUTER_API_KEY"] = "test-openrouter-key"
os.environ["ELEVENLABS_API_KEY"] = "test-elevenlabs-key"
os.environ["R2_PUBLIC_URL"] = ""
os.environ["RUN_DB_CREATE_ALL"] = "0"

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from webinar.database import Base
from webinar import models  # noqa: F401
from webinar.llm_client import GenerationError
from webinar.services.object_store import AudioNotFound, ObjectStore, StoredObject, UploadError
from webinar.services.speech import SynthesisError


@pytest.fixture()
def session_factory(tmp_path: Path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}", poolclass=NullPool)

    async def _create():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create())
    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    asyncio.run(engine.dispose())


class FakeObjectStore(ObjectStore):
    """ObjectStore that keeps objects in a dict instead of talking to S3."""

    def __init__(self, public_url: str = ""):
        super().__init__(client=object(), bucket="test-bucket", public_url=public_url)
        self.objects: Dict[str, StoredObject] = {}
        self.uploads: List[str] = []
        self.fail_uploads = False
        self.fetch_error: Optional[Exception] = None

    async def upload(self, key: str, body: bytes, content_type: str) -> str:
        if self.fail_uploads:
            raise UploadError("bucket unavailable")
        self.uploads.append(key)
        self.objects[key] = StoredObject(body=body, content_type=content_type)
        return self.public_url_for(key)

    async def fetch(self, key: str) -> StoredObject:
        if self.fetch_error is not None:
            raise self.fetch_error
        if key not in self.objects:
            raise AudioNotFound(key)
        return self.objects[key]


class FakeProviders:
    """Stand-ins for the LLM and TTS calls, recording the order they ran in."""

    def __init__(self):
        self.events: List[str] = []
        self.prompts: List[str] = []
        self.scripts_synthesized: List[str] = []
        self.script = "Welcome to the session on internal audits."
        self.fail_generation = False
        self.fail_synthesis = False

    async def generate(self, prompt: str) -> str:
        self.events.append("generate")
        self.prompts.append(prompt)
        if self.fail_generation:
            raise GenerationError("upstream timeout")
        return self.script

    async def synthesize(self, script: str, voice_id=None, language=None):
        self.events.append("synthesize")
        self.scripts_synthesized.append(script)
        if self.fail_synthesis:
            raise SynthesisError("quota exceeded")
        return b"ID3-fake-mp3", "audio/mpeg"


@pytest.fixture()
def fake_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture()
def providers() -> FakeProviders:
    return FakeProviders()
