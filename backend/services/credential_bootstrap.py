"""
External credential bootstrap
=============================
Derives a client's billing/session identity from a reporter phone number
through the identity service's two-step handshake:

  LOGIN  — POST the phone number, read the tenant row (compGuid, webPswd, bid, uid)
  AUTH   — POST the tenant credentials + our app GUID, expect a session token
  DONE   — emit the partial client record (session token is discarded)

Any failure raises LoginFailed or AuthFailed. Each phase is tried
exactly once; there are no retries. Both calls share an optional overall
deadline on top of the per-request timeout.

Both endpoints speak the same wire format: the request body is a JSON list of
{paramName, paramValue, paramType} triples and the response is an envelope
whose `APIResponseText` is itself a JSON document.

Usage:
    async with httpx.AsyncClient() as http:
        bootstrap = CredentialBootstrap(http)
        partial = await bootstrap.fetch_client_data("+972501234567", deadline=15)
"""

import asyncio
import re
import time
from enum import Enum
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from config import BOOTSTRAP_TIMEOUT_SECONDS, IDENTITY_API_BASE_URL
from errors import AuthFailed, BootstrapError, LoginFailed
from logging_config import get_logger

logger = get_logger("credential_bootstrap")

LOGIN_PATH = "/BuildApp/Login/EzhGlobalTenantLogin"
AUTH_PATH = "/dbActions/Login/Auth"
APP_GUID = "77C8F2FD-B1DE-4CEA-BE74-FD943B3BD54D"
MTC_GROUP_ID = 21

# paramType codes understood by the identity service
PARAM_MOBILE = 22
PARAM_GUID = 16
PARAM_STRING = 8

HEADERS = {"accept": "*/*", "content-type": "application/json"}

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class Phase(str, Enum):
    LOGIN = "login"
    AUTH = "auth"
    DONE = "done"


# ── Wire models ──────────────────────────────────────────────────────────────

class Envelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    APIResponseText: Optional[str] = None


class LoginRow(BaseModel):
    model_config = ConfigDict(extra="allow")

    compGuid: Any = None
    webPswd: Any = None
    bid: Any = None
    uid: Any = None


class LoginPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    Table: list[LoginRow] = []


class AuthPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    sessionToken: Any = None


def param(name: str, value: Any, param_type: int) -> dict[str, Any]:
    return {"paramName": name, "paramValue": value, "paramType": param_type}


def parse_int(value: Any) -> int:
    """Leading-integer parse: "5" -> 5, "12ab" -> 12, 7.9 -> 7, junk/None -> 0."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value and abs(value) != float("inf") else 0
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


_P = TypeVar("_P", bound=BaseModel)


class CredentialBootstrap:
    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str = IDENTITY_API_BASE_URL,
        timeout: float = BOOTSTRAP_TIMEOUT_SECONDS,
    ):
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    async def fetch_client_data(
        self,
        phone: str,
        deadline: Optional[float] = None,
    ) -> dict[str, Any]:
        """
        Run LOGIN then AUTH for `phone` and return the partial client record.
        `deadline` is an overall budget in seconds covering both calls.
        """
        expires_at = time.monotonic() + deadline if deadline is not None else None
        phase = Phase.LOGIN
        try:
            row = await self._login(phone, expires_at)
            phase = Phase.AUTH
            await self._auth(row, expires_at)
        except BootstrapError as e:
            logger.warning(
                "bootstrap.failed",
                extra={"phase": phase.value, "status": e.status, "reason": e.reason},
            )
            raise

        comp_guid = row.compGuid or ""
        logger.info("bootstrap.done", extra={"phase": Phase.DONE.value, "comp_id": comp_guid})
        return {
            "bid": parse_int(row.bid),
            "uid": parse_int(row.uid),
            "mtcGroupID": MTC_GROUP_ID,
            "compId": comp_guid,
            "userName": comp_guid,
            "password": row.webPswd or "",
            "appGuid": APP_GUID,
        }

    # ── Phases ────────────────────────────────────────────────────────────────

    async def _login(self, phone: str, expires_at: Optional[float]) -> LoginRow:
        body = [param("mobile", phone, PARAM_MOBILE)]
        text = await self._call(LoginFailed, LOGIN_PATH, body, expires_at)
        payload = self._decode_payload(LoginFailed, text, LoginPayload)
        if not payload.Table:
            raise LoginFailed("no data")
        logger.info("bootstrap.login_ok", extra={"rows": len(payload.Table)})
        return payload.Table[0]

    async def _auth(self, row: LoginRow, expires_at: Optional[float]):
        body = [
            param("CompID", row.compGuid, PARAM_GUID),
            param("UserName", row.compGuid, PARAM_STRING),
            param("UserPswd", row.webPswd, PARAM_STRING),
            param("AppGuid", APP_GUID, PARAM_STRING),
        ]
        text = await self._call(AuthFailed, AUTH_PATH, body, expires_at)
        payload = self._decode_payload(AuthFailed, text, AuthPayload)
        if not payload.sessionToken:
            raise AuthFailed("no session token")
        logger.info("bootstrap.auth_ok")

    # ── Transport + decoding ──────────────────────────────────────────────────

    def _budget(self, failure: type[BootstrapError], expires_at: Optional[float]) -> float:
        if expires_at is None:
            return self._timeout
        remaining = expires_at - time.monotonic()
        if remaining <= 0:
            raise failure("timeout")
        return min(self._timeout, remaining)

    async def _call(
        self,
        failure: type[BootstrapError],
        path: str,
        body: list[dict[str, Any]],
        expires_at: Optional[float],
    ) -> Optional[str]:
        """POST once and return the envelope's APIResponseText."""
        budget = self._budget(failure, expires_at)
        try:
            resp = await asyncio.wait_for(
                self._http.post(
                    f"{self._base_url}{path}",
                    json=body,
                    headers=HEADERS,
                    timeout=budget,
                ),
                timeout=budget,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise failure("timeout") from e
        except httpx.RequestError as e:
            raise failure(f"transport error: {e.__class__.__name__}") from e

        if not resp.is_success:
            raise failure("http error", status=resp.status_code)

        try:
            envelope = Envelope.model_validate_json(resp.content)
        except ValidationError as e:
            raise failure("invalid envelope", status=resp.status_code) from e
        return envelope.APIResponseText

    @staticmethod
    def _decode_payload(failure: type[BootstrapError], text: Optional[str], model: type[_P]) -> _P:
        if not text:
            return model()
        try:
            return model.model_validate_json(text)
        except ValidationError as e:
            raise failure("invalid payload") from e
