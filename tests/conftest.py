import os

# config.py refuses to import without these
os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-service-key")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key")
os.environ["ENABLE_SCHEDULER"] = "false"

import pytest
from fastapi.testclient import TestClient

from fakes import FakeDatabase, FakeLLM, FakeMailer


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def client(db, llm, mailer, monkeypatch):
    import deps
    import main

    monkeypatch.setattr(main, "CRON_SECRET", None)
    main.app.dependency_overrides[deps.get_db] = lambda: db
    main.app.dependency_overrides[deps.get_llm] = lambda: llm
    main.app.dependency_overrides[deps.get_mailer] = lambda: mailer
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()
