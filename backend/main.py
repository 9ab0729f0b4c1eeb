from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import CORS_ORIGINS, DATABASE_URL, VERSION
from database import Database
from logging_config import get_logger
from routers import clients
from services.client_collection import ClientCollection
from services.client_store import ClientStore
from services.credential_bootstrap import CredentialBootstrap

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    database = Database(DATABASE_URL)
    await database.connect()
    http = httpx.AsyncClient()
    app.state.database = database
    app.state.store = ClientStore(ClientCollection(database))
    app.state.bootstrap = CredentialBootstrap(http)
    logger.info("Client registry started ✓", extra={"version": VERSION})
    yield
    # Shutdown
    await http.aclose()
    await database.disconnect()


app = FastAPI(
    title="Client Registry",
    description="Client credentials for WhatsApp groups and the external billing system",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_error(request: Request, exc: RequestValidationError):
    """Malformed query parameters are a 400 with the usual {"error"} shape."""
    problems = [
        f"{err['loc'][-1]}: {err['msg']}" if err.get("loc") else err["msg"]
        for err in exc.errors()
    ]
    return JSONResponse({"error": f"Invalid request: {', '.join(problems)}"}, status_code=400)


# Routers
app.include_router(clients.router, prefix="/api")


@app.get("/api/health")
async def health():
    return {"status": "ok", "version": VERSION}
