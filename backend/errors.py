"""
Error taxonomy shared by the record store, the credential bootstrap and the
HTTP layer. Only the routers translate these into status codes.
"""

from typing import Optional


class ClientServiceError(Exception):
    pass


class ValidationError(ClientServiceError):
    """Input failed schema or format checks. Carries one message per problem."""

    def __init__(self, messages: list[str]):
        self.messages = list(messages)
        super().__init__(f"Client validation failed: {', '.join(self.messages)}")


class NotFoundError(ClientServiceError):
    pass


class StorageError(ClientServiceError):
    """The underlying database was unreachable or rejected the operation."""


class BootstrapError(ClientServiceError):
    phase = "bootstrap"

    def __init__(self, reason: str, status: Optional[int] = None):
        self.reason = reason
        self.status = status
        detail = f"{reason} (status {status})" if status is not None else reason
        super().__init__(f"{self.phase} failed: {detail}")


class LoginFailed(BootstrapError):
    phase = "login"


class AuthFailed(BootstrapError):
    phase = "auth"
