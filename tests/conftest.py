from typing import AsyncGenerator, Callable, Optional

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request

from headerguard.core.config import Settings
from headerguard.main import create_application


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def make_request(scheme: str = "http", user_agent: Optional[str] = None) -> Request:
    headers = []
    if user_agent is not None:
        headers.append((b"user-agent", user_agent.encode("latin-1")))
    return Request(
        {
            "type": "http",
            "method": "GET",
            "scheme": scheme,
            "server": ("testserver", 443 if scheme == "https" else 80),
            "path": "/",
            "query_string": b"",
            "headers": headers,
        }
    )


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in Settings.model_fields:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_application(settings)


@pytest.fixture
def client_for() -> Callable[..., AsyncClient]:
    def _client(
        application: FastAPI,
        base_url: str = "http://testserver",
        raise_app_exceptions: bool = True,
    ) -> AsyncClient:
        transport = ASGITransport(app=application, raise_app_exceptions=raise_app_exceptions)
        return AsyncClient(transport=transport, base_url=base_url)

    return _client


@pytest_asyncio.fixture
async def client(app: FastAPI, client_for) -> AsyncGenerator[AsyncClient, None]:
    async with client_for(app) as ac:
        yield ac


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    return make_settings


@pytest.fixture
def request_factory() -> Callable[..., Request]:
    return make_request
