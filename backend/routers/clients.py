"""
Client endpoints.

GET    /api/clients                      — paginated list (page, limit, sortBy, sortOrder)
GET    /api/clients?id=...               — one client
POST   /api/clients                      — create
PATCH  /api/clients?id=...               — partial update
DELETE /api/clients?id=...               — remove
GET    /api/clients/active?group=...     — active client for a WhatsApp group
POST   /api/clients/bootstrap            — create a client from the identity service

Errors are always {"error": "..."}. Validation messages pass through
verbatim; storage and other internal failures are reported generically.
"""

import json
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from config import BOOTSTRAP_DEADLINE_SECONDS
from deps import get_bootstrap, get_store
from errors import BootstrapError, NotFoundError, ValidationError
from logging_config import get_logger
from schemas import BootstrapRequest, ClientOut, validate_or_raise
from services.client_store import ClientStore
from services.credential_bootstrap import CredentialBootstrap

router = APIRouter(prefix="/clients", tags=["clients"])
logger = get_logger("api.clients")


# ── Helpers ─────────────────────────────────────────────────────────────────

def _out(client: ClientOut) -> dict:
    return client.model_dump(by_alias=True, mode="json")


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError(["Request body must be valid JSON"]) from e


# ── Routes ───────────────────────────────────────────────────────────────────

@router.get("")
async def get_clients(
    client_id: Optional[str] = Query(None, alias="id"),
    page: int = Query(1),
    limit: int = Query(10),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    store: ClientStore = Depends(get_store),
):
    try:
        if client_id:
            client = await store.get_by_id(client_id)
            if not client:
                return _error(404, "Client not found")
            return _out(client)

        result = await store.list(
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return result.model_dump(by_alias=True, mode="json")
    except ValidationError as e:
        return _error(400, str(e))
    except Exception:
        logger.exception("api.fetch_failed")
        return _error(500, "Failed to fetch clients")


@router.post("", status_code=201)
async def create_client(request: Request, store: ClientStore = Depends(get_store)):
    try:
        client = await store.create(await _json_body(request))
        return _out(client)
    except ValidationError as e:
        return _error(400, str(e))
    except Exception:
        logger.exception("api.create_failed")
        return _error(500, "Failed to create client")


@router.patch("")
async def update_client(
    request: Request,
    client_id: Optional[str] = Query(None, alias="id"),
    store: ClientStore = Depends(get_store),
):
    if not client_id:
        return _error(400, "Client ID is required")
    try:
        client = await store.update(client_id, await _json_body(request))
        return _out(client)
    except ValidationError as e:
        return _error(400, str(e))
    except NotFoundError:
        return _error(404, "Client not found")
    except Exception:
        logger.exception("api.update_failed", extra={"client_id": client_id})
        return _error(500, "Failed to update client")


@router.delete("")
async def delete_client(
    client_id: Optional[str] = Query(None, alias="id"),
    store: ClientStore = Depends(get_store),
):
    if not client_id:
        return _error(400, "Client ID is required")
    try:
        deleted = await store.delete(client_id)
    except Exception:
        logger.exception("api.delete_failed", extra={"client_id": client_id})
        return _error(500, "Failed to delete client")
    if not deleted:
        return _error(404, "Client not found")
    return {"message": "Client deleted successfully"}


@router.get("/active")
async def get_active_client(
    group: Optional[str] = Query(None),
    store: ClientStore = Depends(get_store),
):
    if not group:
        return _error(400, "Group name is required")
    try:
        client = await store.get_active_by_group(group)
    except Exception:
        logger.exception("api.active_lookup_failed", extra={"group": group})
        return _error(500, "Failed to fetch clients")
    if not client:
        return _error(404, "Client not found")
    return _out(client)


@router.post("/bootstrap", status_code=201)
async def bootstrap_client(
    request: Request,
    store: ClientStore = Depends(get_store),
    bootstrap: CredentialBootstrap = Depends(get_bootstrap),
):
    """
    Resolve credentials for `phone` through the identity service, then store
    a new client for that reporter. The identity service is never retried.
    """
    try:
        req = validate_or_raise(BootstrapRequest, await _json_body(request))
        partial = await bootstrap.fetch_client_data(req.phone, deadline=BOOTSTRAP_DEADLINE_SECONDS)
        partial.update(reporterPhone=req.phone, reporterName=req.reporter_name)
        if req.whatsapp_group_name is not None:
            partial["whatsappGroupName"] = req.whatsapp_group_name
        client = await store.create(partial)
        return _out(client)
    except ValidationError as e:
        return _error(400, str(e))
    except BootstrapError as e:
        return _error(502, str(e), phase=e.phase, status=e.status, reason=e.reason)
    except Exception:
        logger.exception("api.bootstrap_failed")
        return _error(500, "Failed to create client")
