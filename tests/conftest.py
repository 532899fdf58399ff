from __future__ import annotations

import os
from pathlib import Path

import pytest


@pytest.fixture(scope="session", autouse=True)
def _load_dotenv_for_tests() -> None:
    """Load repo .env for local runs (PyCharm/CLI).

    In CI, we *don't* auto-load `.env` by default so a developer's local
    REDIS_URL or content override can't leak into the suite.
    """

    # Opt-in in CI with: VNENGINE_LOAD_DOTENV_FOR_TESTS=1
    if os.environ.get("CI") and os.environ.get("VNENGINE_LOAD_DOTENV_FOR_TESTS") != "1":
        return

    env_path = Path(__file__).resolve().parents[1] / ".env"
    if env_path.exists():
        from dotenv import load_dotenv

        load_dotenv(dotenv_path=env_path, override=False)


@pytest.fixture(scope="session", autouse=True)
def _init_content_for_tests() -> None:
    """Register the bundled demo pack so tests never depend on VNENGINE_CONTENT."""

    from vnengine.content.demo import build_demo_pack
    from vnengine.content.singleton import init_content, reset_content_for_tests

    reset_content_for_tests()
    init_content(build_demo_pack())


@pytest.fixture()
def client_and_redis():
    """FastAPI TestClient wired to a fakeredis instance.

    The client is used as a context manager so engine tasks share one event
    loop across requests and are closed on shutdown.
    """

    from collections.abc import Generator

    import fakeredis
    from fastapi.testclient import TestClient

    from vnengine.api.deps import get_redis
    from vnengine.main import app

    r = fakeredis.FakeRedis(decode_responses=True)

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    app.dependency_overrides[get_redis] = _override
    with TestClient(app) as c:
        yield c, r
    app.dependency_overrides.clear()
