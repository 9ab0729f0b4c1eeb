"""
Client — credentials/config tying a WhatsApp group to the external
billing/tenant system.
"""

from sqlalchemy import Column, String, Integer, DateTime
from database import Base
import uuid


class Client(Base):
    __tablename__ = "clients"

    id                  = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    # Lookup key for the "active client" of a group; not unique
    whatsapp_group_name = Column(String, nullable=True, index=True)

    # ── Billing / tenant identity ───────────────────────────────────────────
    bid                 = Column(Integer, nullable=False)
    uid                 = Column(Integer, nullable=False)
    mtc_group_id        = Column(Integer, nullable=False)

    # ── Reporter ────────────────────────────────────────────────────────────
    reporter_name       = Column(String, nullable=False)
    reporter_phone      = Column(String, nullable=False)   # +972XXXXXXXX(X)

    # ── External login ──────────────────────────────────────────────────────
    comp_id             = Column(String, nullable=False)
    user_name           = Column(String, nullable=False)
    # Stored as received. Only services/client_collection.py reads or writes it.
    password            = Column(String, nullable=False)
    app_guid            = Column(String, nullable=False)

    created_at          = Column(DateTime(timezone=True), nullable=False)
    updated_at          = Column(DateTime(timezone=True), nullable=False)


# Wire (camelCase) name -> column, for sorting and filtering. Password excluded.
FIELD_COLUMNS = {
    "id": Client.id,
    "whatsappGroupName": Client.whatsapp_group_name,
    "bid": Client.bid,
    "uid": Client.uid,
    "mtcGroupID": Client.mtc_group_id,
    "reporterName": Client.reporter_name,
    "reporterPhone": Client.reporter_phone,
    "compId": Client.comp_id,
    "userName": Client.user_name,
    "appGuid": Client.app_guid,
    "createdAt": Client.created_at,
    "updatedAt": Client.updated_at,
}
