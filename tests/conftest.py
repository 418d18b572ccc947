import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure project root is on sys.path so 'allme' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SUPABASE_DISABLED", "1")
os.environ.setdefault("USE_LOCAL_DB", "0")
os.environ.setdefault("SUPABASE_STORAGE_LOCAL_DIR", ".local_storage")


@pytest.fixture(autouse=True)
def empty_memory_store():
    from allme.infrastructure.database.repositories import link_repository, profile_repository

    profile_repository._MEM_PROFILES.clear()
    link_repository._MEM_LINKS.clear()
    yield
    profile_repository._MEM_PROFILES.clear()
    link_repository._MEM_LINKS.clear()


@pytest.fixture(autouse=True)
def local_storage_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("SUPABASE_STORAGE_LOCAL_DIR", str(tmp_path / "storage"))


@pytest.fixture(scope="session")
def client() -> TestClient:
    # lazy import after env configured
    from allme.main import create_app

    app = create_app()
    return TestClient(app)


@pytest.fixture()
def auth_header() -> dict[str, str]:
    # any token is accepted in disabled mode
    return {"Authorization": "Bearer test-token"}


@pytest.fixture()
def other_auth_header() -> dict[str, str]:
    return {"Authorization": "Bearer other-token"}
