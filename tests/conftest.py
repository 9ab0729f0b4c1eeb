import json

import httpx
import pytest

from database import Database
from main import app
from services.client_collection import ClientCollection
from services.client_store import ClientStore
from services.credential_bootstrap import AUTH_PATH, LOGIN_PATH, CredentialBootstrap

IDENTITY_URL = "https://identity.test"


def valid_client(**overrides):
    data = {
        "whatsappGroupName": "Ops Group",
        "bid": 5,
        "uid": 9,
        "mtcGroupID": 21,
        "reporterName": "Dana",
        "reporterPhone": "+972501234567",
        "compId": "C1",
        "userName": "C1",
        "password": "p",
        "appGuid": "77C8F2FD-B1DE-4CEA-BE74-FD943B3BD54D",
    }
    data.update(overrides)
    return data


def envelope(payload) -> dict:
    return {"APIResponseText": json.dumps(payload)}


class FakeIdentityService:
    """
    Stands in for the identity service behind an httpx.MockTransport.
    Set `login` / `auth` to (status, json_body), to raw bytes, or to an
    exception instance (raised) or an async callable (awaited).
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.login = (200, envelope({"Table": [
            {"compGuid": "C1", "webPswd": "p", "bid": "5", "uid": "9"},
        ]}))
        self.auth = (200, envelope({"sessionToken": "session-abc"}))

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def bodies(self) -> list:
        return [json.loads(r.content) for r in self.requests]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        behaviour = self.login if request.url.path == LOGIN_PATH else self.auth
        assert request.url.path in (LOGIN_PATH, AUTH_PATH)

        if isinstance(behaviour, Exception):
            raise behaviour
        if callable(behaviour):
            return await behaviour(request)
        status, body = behaviour
        if isinstance(body, bytes):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)


@pytest.fixture
async def database():
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.connect()
    yield db
    await db.disconnect()


@pytest.fixture
def store(database):
    return ClientStore(ClientCollection(database))


@pytest.fixture
def identity():
    return FakeIdentityService()


@pytest.fixture
async def identity_http(identity):
    async with httpx.AsyncClient(transport=httpx.MockTransport(identity.handler)) as http:
        yield http


@pytest.fixture
def bootstrap(identity_http):
    return CredentialBootstrap(identity_http, base_url=IDENTITY_URL, timeout=5)


@pytest.fixture
async def api(store, bootstrap):
    app.state.store = store
    app.state.bootstrap = bootstrap
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
