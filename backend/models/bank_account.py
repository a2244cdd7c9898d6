"""BankAccount model - a bank account reported by the aggregator."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Column, DateTime, Numeric, String

from database import Base

ACCOUNT_STATUS_ACTIVE = "active"
ACCOUNT_STATUS_REMOVED = "removed"


class BankAccount(Base):
    """A linked bank account, keyed by the aggregator's account id.

    Rows are always read and mutated scoped by ``aggregator_customer_id``.
    """

    __tablename__ = "open_banking_accounts"

    id = Column(String, primary_key=True)  # Aggregator-assigned account id
    aggregator_customer_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)
    balance = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    currency = Column(String(3), nullable=False, default="USD")
    status = Column(String, nullable=False, default=ACCOUNT_STATUS_ACTIVE)
    institution_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    last_updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
