import re
from datetime import datetime
from typing import Any, Literal, Optional, TypeVar

import pydantic
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from config import MAX_PAGE_SIZE
from errors import ValidationError

ISRAELI_PHONE = re.compile(r"\+972[0-9]{8,9}")
PHONE_MESSAGE = "Phone must be in Israeli format (+972XXXXXXXXX)"

# Largest page whose row offset still fits a signed 64-bit SQL integer
MAX_PAGE = (2**63 - 1) // MAX_PAGE_SIZE

_M = TypeVar("_M", bound=BaseModel)


def check_israeli_phone(value: str) -> str:
    if not ISRAELI_PHONE.fullmatch(value):
        raise PydanticCustomError("israeli_phone", PHONE_MESSAGE)
    return value


class _ClientFields(BaseModel):
    """Wire names are camelCase; `mtcGroupID` keeps its historical casing."""

    model_config = ConfigDict(alias_generator=to_camel, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def reject_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            known = {f.alias or name for name, f in cls.model_fields.items()}
            nulls = sorted(k for k, v in data.items() if v is None and k in known)
            if nulls:
                raise PydanticCustomError(
                    "null_field", "{fields} must not be null", {"fields": ", ".join(nulls)}
                )
        return data


# ── Client ─────────────────────────────────────────────────────────────────

class ClientCreate(_ClientFields):
    whatsapp_group_name: Optional[StrictStr] = None
    bid: StrictInt
    uid: StrictInt
    mtc_group_id: StrictInt = Field(alias="mtcGroupID")
    reporter_name: StrictStr
    reporter_phone: StrictStr
    comp_id: StrictStr
    user_name: StrictStr
    password: StrictStr
    app_guid: StrictStr

    validate_reporter_phone = field_validator("reporter_phone")(check_israeli_phone)


class ClientUpdate(_ClientFields):
    """Every field optional; whatever is present is still format-checked."""

    whatsapp_group_name: Optional[StrictStr] = None
    bid: Optional[StrictInt] = None
    uid: Optional[StrictInt] = None
    mtc_group_id: Optional[StrictInt] = Field(None, alias="mtcGroupID")
    reporter_name: Optional[StrictStr] = None
    reporter_phone: Optional[StrictStr] = None
    comp_id: Optional[StrictStr] = None
    user_name: Optional[StrictStr] = None
    password: Optional[StrictStr] = None
    app_guid: Optional[StrictStr] = None

    @field_validator("reporter_phone")
    @classmethod
    def validate_reporter_phone(cls, value: Optional[str]) -> Optional[str]:
        return check_israeli_phone(value) if value is not None else value


class ClientOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    whatsapp_group_name: Optional[str] = None
    bid: int
    uid: int
    mtc_group_id: int = Field(alias="mtcGroupID")
    reporter_name: str
    reporter_phone: str
    comp_id: str
    user_name: str
    password: str
    app_guid: str
    created_at: datetime
    updated_at: datetime


# ── Listing ────────────────────────────────────────────────────────────────

class ListOptions(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    page: int = Field(1, ge=1, le=MAX_PAGE)
    limit: int = Field(10, ge=1, le=MAX_PAGE_SIZE)
    sort_by: str = "createdAt"
    sort_order: Literal["asc", "desc"] = "desc"


class ClientPage(BaseModel):
    clients: list[ClientOut]
    total: int
    page: int
    limit: int


# ── Bootstrap ──────────────────────────────────────────────────────────────

class BootstrapRequest(_ClientFields):
    """Phone-driven creation: credentials come from the identity service."""

    phone: StrictStr
    reporter_name: StrictStr
    whatsapp_group_name: Optional[StrictStr] = None

    validate_phone = field_validator("phone")(check_israeli_phone)


# ── Validation entry point ─────────────────────────────────────────────────

def _messages(exc: pydantic.ValidationError) -> list[str]:
    out = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"])
        out.append(f"{field}: {err['msg']}" if field else err["msg"])
    return out


def validate_or_raise(model: type[_M], data: Any) -> _M:
    """Validate `data` against `model`, raising the service-level ValidationError."""
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(_messages(e)) from e
