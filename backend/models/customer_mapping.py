"""CustomerMapping model - links a platform client to an aggregator customer."""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, DateTime, String

from database import Base, generate_uuid


class LinkageStatus(str, Enum):
    """Bank-linkage progress for a client."""

    NOT_LINKED = "not_linked"
    PENDING = "pending"
    LINKED = "linked"
    ERROR = "error"


class CustomerMapping(Base):
    """One aggregator customer per platform client.

    ``status`` is the only field that changes after creation, and only
    in response to webhook events.
    """

    __tablename__ = "open_banking_customers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    platform_client_id = Column(String, unique=True, index=True, nullable=False)
    aggregator_customer_id = Column(String, unique=True, index=True, nullable=False)
    status = Column(String, nullable=False, default=LinkageStatus.NOT_LINKED.value)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
