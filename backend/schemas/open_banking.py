"""Pydantic schemas for the open-banking endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class InvitationRequest(BaseModel):
    """Request body for sending a bank-link invitation to a client."""

    client_email: str = Field(min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    client_name: str = Field(min_length=1)
    redirect_uri: str | None = None


class InvitationResponse(BaseModel):
    success: bool = True
    aggregator_customer_id: str
    message: str = "Bank authentication email sent successfully"
    data: dict[str, Any] = Field(default_factory=dict)


class BankAccountResponse(BaseModel):
    """A locally stored, active bank account."""

    id: str
    name: str
    type: str
    balance: Decimal
    currency: str
    status: str
    institution_id: str | None = None

    model_config = ConfigDict(from_attributes=True)


class LinkStatusResponse(BaseModel):
    """What the UI polls to show linkage progress."""

    status: str
    aggregator_customer_id: str | None = None
    linked_at: datetime | None = None
    account_count: int = 0
    accounts: list[BankAccountResponse] = Field(default_factory=list)


class LiveAccountsResponse(BaseModel):
    """Accounts as the aggregator reports them right now (not persisted)."""

    aggregator_customer_id: str
    accounts: list[dict[str, Any]]
    account_count: int
    has_accounts: bool


class WebhookAck(BaseModel):
    """Body of the 202 returned to the aggregator."""

    received: bool = True
    processed: bool
    eventId: str | None = None
    duplicate: bool = False
