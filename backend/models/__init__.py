"""SQLAlchemy ORM models."""

from .bank_account import ACCOUNT_STATUS_ACTIVE, ACCOUNT_STATUS_REMOVED, BankAccount
from .customer_mapping import CustomerMapping, LinkageStatus
from .webhook_event import WebhookEventRecord

__all__ = ["ACCOUNT_STATUS_ACTIVE", "ACCOUNT_STATUS_REMOVED", "BankAccount", "CustomerMapping", "LinkageStatus", "WebhookEventRecord"]
