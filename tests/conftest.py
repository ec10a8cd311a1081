"""Shared fixtures: a fake Correios server and relay configuration."""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Optional

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from correios_relay.config import RelayConfig
from correios_relay.models import EXPIRY_FORMAT
from correios_relay.server import create_app


AUTH_PATH = "/token/v1/autentica"
TRACKING_PATH = "/areletronico/v1/ars/eventos"


def expiry_in(**delta) -> str:
    """Carrier-formatted expiry relative to now."""
    return (datetime.now() + timedelta(**delta)).strftime(EXPIRY_FORMAT)


def sample_object(code: str = "AA123456789BR") -> dict[str, Any]:
    return {
        "codigo": code,
        "mensagem": "",
        "tipo": "AR",
        "eventos": [
            {
                "tipoEvento": "BDE",
                "statusEvento": "01",
                "descricaoEvento": "Objeto entregue ao destinatário",
                "nomeUnidade": "CDD Centro",
                "municipio": "Cuiabá",
                "uf": "MT",
                "dataCriacao": "2024-05-10T14:22:00",
                "nomeDestinatario": "Maria",
                "codigoSRO": code,
            }
        ],
    }


class FakeCorreios:
    """In-process stand-in for the Correios token and tracking endpoints."""

    def __init__(self):
        self.auth_status = 200
        self.auth_body: Any = {
            "ambiente": "PRODUCAO",
            "token": "tok-123",
            "expiraEm": expiry_in(hours=1),
        }
        self.auth_delay = 0.0

        self.track_status = 200
        self.track_body: Any = [sample_object()]
        self.track_delay = 0.0

        self.auth_requests: list[Any] = []
        self.track_requests: list[tuple[Any, bytes]] = []
        self.server: Optional[TestServer] = None

    @property
    def auth_calls(self) -> int:
        return len(self.auth_requests)

    @property
    def track_calls(self) -> int:
        return len(self.track_requests)

    @property
    def auth_url(self) -> str:
        return str(self.server.make_url(AUTH_PATH))

    @property
    def tracking_url(self) -> str:
        return str(self.server.make_url(TRACKING_PATH))

    def _respond(self, status: int, body: Any) -> web.Response:
        if isinstance(body, (str, bytes)):
            return web.Response(body=body, status=status, content_type="application/json")
        return web.json_response(body, status=status)

    async def handle_auth(self, request: web.Request) -> web.Response:
        self.auth_requests.append(request.headers.copy())
        if self.auth_delay:
            await asyncio.sleep(self.auth_delay)
        return self._respond(self.auth_status, self.auth_body)

    async def handle_track(self, request: web.Request) -> web.Response:
        self.track_requests.append((request.headers.copy(), await request.read()))
        if self.track_delay:
            await asyncio.sleep(self.track_delay)
        return self._respond(self.track_status, self.track_body)

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post(AUTH_PATH, self.handle_auth)
        app.router.add_post(TRACKING_PATH, self.handle_track)
        return app


@pytest_asyncio.fixture
async def fake_correios():
    """Running fake carrier."""
    fake = FakeCorreios()
    fake.server = TestServer(fake.make_app())
    await fake.server.start_server()
    yield fake
    await fake.server.close()


@pytest.fixture
def config(fake_correios):
    """Relay configuration pointed at the fake carrier."""
    return RelayConfig(
        correios_username="user",
        correios_password="secret",
        auth_url=fake_correios.auth_url,
        tracking_url=fake_correios.tracking_url,
        frontend_origin="https://frontend.example",
        request_timeout=2,
    )


@pytest_asyncio.fixture
async def client(config):
    """Test client for the relay app."""
    async with TestClient(TestServer(create_app(config))) as test_client:
        yield test_client


ENV_VARS = [
    "CORREIOS_USERNAME",
    "CORREIOS_PASSWORD",
    "CORREIOS_AUTH_URL",
    "CORREIOS_TRACKING_URL",
    "CORREIOS_TRACKING_AUTH",
    "FRONTEND_ORIGIN",
    "RELAY_HOST",
    "RELAY_PORT",
    "REQUEST_TIMEOUT",
    "LOG_LEVEL",
    "LOG_FILE",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Isolate from the developer's environment and .env files."""
    # setenv first so values loaded by python-dotenv are undone at teardown
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
