"""
FastAPI dependencies. The objects themselves are built once in the app
lifespan (see main.py) and parked on app.state.
"""

from fastapi import Request

from services.client_store import ClientStore
from services.credential_bootstrap import CredentialBootstrap


def get_store(request: Request) -> ClientStore:
    return request.app.state.store


def get_bootstrap(request: Request) -> CredentialBootstrap:
    return request.app.state.bootstrap
