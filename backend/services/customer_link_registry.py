"""Customer link registry - platform clients to aggregator customers."""

import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from integrations.open_banking_client import OpenBankingClient
from models import BankAccount, CustomerMapping, LinkageStatus
from services.account_reconciler import AccountReconciler

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def build_username(display_name: str, now_ms: int | None = None) -> str:
    """Aggregator usernames must be alphanumeric and unique.

    >>> build_username("Jane O'Neil", now_ms=1700000000000)
    'janeoneil1700000000000'
    """
    clean = _NON_ALNUM.sub("", display_name or "").lower() or "client"
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{clean}{now_ms}"


@dataclass
class LinkStatus:
    """Read-only projection of a client's linkage for the UI to poll."""

    status: str
    aggregator_customer_id: str | None = None
    accounts: list[BankAccount] = field(default_factory=list)
    linked_at: datetime | None = None

    @property
    def account_count(self) -> int:
        return len(self.accounts)


class CustomerLinkRegistry:
    """Maps platform clients to aggregator customers, creating them on demand."""

    def __init__(self, client: OpenBankingClient):
        self._client = client

    @staticmethod
    def get_mapping(db: Session, platform_client_id: str) -> CustomerMapping | None:
        return (
            db.query(CustomerMapping)
            .filter(CustomerMapping.platform_client_id == platform_client_id)
            .first()
        )

    @staticmethod
    def get_mapping_by_customer_id(db: Session, aggregator_customer_id: str) -> CustomerMapping | None:
        return (
            db.query(CustomerMapping)
            .filter(CustomerMapping.aggregator_customer_id == aggregator_customer_id)
            .first()
        )

    def get_or_create_customer(self, db: Session, platform_client_id: str, display_name: str) -> str:
        """Return the aggregator customer id for a client, creating one if needed.

        Commits the new mapping. Two concurrent callers can both create an
        aggregator customer; the unique constraint on ``platform_client_id``
        lets exactly one mapping win and the loser adopts it.
        """
        existing = self.get_mapping(db, platform_client_id)
        if existing:
            logger.debug(
                "Using existing aggregator customer %s for client %s",
                existing.aggregator_customer_id, platform_client_id,
            )
            return existing.aggregator_customer_id

        username = build_username(display_name)
        customer = self._client.create_testing_customer(username)
        aggregator_customer_id = str(customer["id"])

        mapping = CustomerMapping(
            platform_client_id=platform_client_id,
            aggregator_customer_id=aggregator_customer_id,
            status=LinkageStatus.NOT_LINKED.value,
        )
        db.add(mapping)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            winner = self.get_mapping(db, platform_client_id)
            if winner is None:
                raise
            logger.warning(
                "Concurrent customer creation for client %s; using %s, aggregator customer %s is orphaned",
                platform_client_id, winner.aggregator_customer_id, aggregator_customer_id,
            )
            return winner.aggregator_customer_id

        logger.info(
            "Created aggregator customer %s for client %s",
            aggregator_customer_id, platform_client_id,
        )
        return aggregator_customer_id

    @staticmethod
    def get_status(db: Session, platform_client_id: str) -> LinkStatus:
        """Current linkage status with the client's active accounts."""
        mapping = CustomerLinkRegistry.get_mapping(db, platform_client_id)
        if mapping is None:
            return LinkStatus(status=LinkageStatus.NOT_LINKED.value)

        accounts = AccountReconciler.list_active(db, mapping.aggregator_customer_id)
        linked_at = None
        if mapping.status == LinkageStatus.LINKED.value:
            linked_at = mapping.updated_at or mapping.created_at
        return LinkStatus(
            status=mapping.status,
            aggregator_customer_id=mapping.aggregator_customer_id,
            accounts=accounts,
            linked_at=linked_at,
        )

    @staticmethod
    def set_status(db: Session, aggregator_customer_id: str, status: LinkageStatus) -> bool:
        """Set a customer's linkage status. Only the state machine calls this.

        Returns:
            False if no mapping exists for the customer.
        """
        mapping = CustomerLinkRegistry.get_mapping_by_customer_id(db, aggregator_customer_id)
        if mapping is None:
            logger.warning("No customer mapping for aggregator customer %s", aggregator_customer_id)
            return False

        previous = mapping.status
        mapping.status = LinkageStatus(status).value
        db.flush()
        logger.info(
            "Customer %s status %s -> %s",
            aggregator_customer_id, previous, mapping.status,
        )
        return True

    def fetch_live_accounts(self, db: Session, platform_client_id: str) -> list[dict] | None:
        """Ask the aggregator directly which accounts a client has linked.

        Read-only: local status and accounts only change through webhooks.

        Returns:
            The aggregator's account records, or None if the client has
            no aggregator customer yet.
        """
        mapping = self.get_mapping(db, platform_client_id)
        if mapping is None:
            return None
        return self._client.get_customer_accounts(mapping.aggregator_customer_id)
