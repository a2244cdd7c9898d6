"""Linkage state machine - routes webhook events to status and account changes.

Transitions by event type::

    started / discovered / adding      log only
    added                              upsert accounts, status -> linked
    done (accounts)                    upsert accounts, status -> linked
    done (no accounts)                 status -> pending
    unableToConnect / invalidCredentials   status -> error
    accountsDeleted                    remove accounts, status -> pending

Status writes are last-write-wins; events carry no sequence number, so a
stale event arriving late can move status backwards.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from models import LinkageStatus
from services.account_reconciler import AccountReconciler
from services.customer_link_registry import CustomerLinkRegistry

logger = logging.getLogger(__name__)

EVENT_PING = "ping"
PROGRESS_EVENTS = frozenset({"started", "discovered", "adding"})
ERROR_EVENTS = frozenset({"unableToConnect", "invalidCredentials"})
EVENT_ADDED = "added"
EVENT_DONE = "done"
EVENT_ACCOUNTS_DELETED = "accountsDeleted"


@dataclass
class WebhookEvent:
    """A parsed aggregator webhook."""

    event_type: str
    event_id: str | None = None
    customer_id: str | None = None
    payload: dict = field(default_factory=dict)


class LinkageStateMachine:
    """Applies webhook events to CustomerMapping status and BankAccounts.

    Flushes only; the caller owns the transaction.
    """

    def __init__(
        self,
        registry: type[CustomerLinkRegistry] | CustomerLinkRegistry = CustomerLinkRegistry,
        reconciler: type[AccountReconciler] | AccountReconciler = AccountReconciler,
    ):
        self._registry = registry
        self._reconciler = reconciler

    def route(self, db: Session, event: WebhookEvent) -> LinkageStatus | None:
        """Apply one event.

        Returns:
            The status written, or None when no status was written
            (progress, unknown type, orphaned customer, bad payload, or a
            deletion that leaves active accounts).
        """
        event_type = event.event_type
        customer_id = event.customer_id

        if event_type == EVENT_PING:
            logger.debug("Ping event reached the state machine; ignoring")
            return None

        if event_type in PROGRESS_EVENTS:
            logger.info("Linkage progress for customer %s: %s", customer_id, event_type)
            return None

        if event_type not in ERROR_EVENTS and event_type not in (
            EVENT_ADDED, EVENT_DONE, EVENT_ACCOUNTS_DELETED,
        ):
            logger.warning("Ignoring unknown webhook event type %r (event %s)", event_type, event.event_id)
            return None

        if not customer_id or self._registry.get_mapping_by_customer_id(db, customer_id) is None:
            logger.warning(
                "Orphaned %s event %s for unknown customer %s; discarding",
                event_type, event.event_id, customer_id,
            )
            return None

        payload = event.payload if isinstance(event.payload, dict) else {}

        if event_type == EVENT_ADDED:
            accounts = payload.get("accounts")
            if not isinstance(accounts, list):
                logger.warning("added event %s has no accounts list; ignoring", event.event_id)
                return None
            self._reconciler.upsert(db, customer_id, accounts)
            return self._transition(db, customer_id, LinkageStatus.LINKED)

        if event_type == EVENT_DONE:
            accounts = payload.get("accounts")
            if isinstance(accounts, list) and accounts:
                self._reconciler.upsert(db, customer_id, accounts)
                return self._transition(db, customer_id, LinkageStatus.LINKED)
            return self._transition(db, customer_id, LinkageStatus.PENDING)

        if event_type in ERROR_EVENTS:
            logger.warning("Linkage failed for customer %s: %s", customer_id, event_type)
            return self._transition(db, customer_id, LinkageStatus.ERROR)

        # accountsDeleted
        account_ids = payload.get("accountIds")
        if not isinstance(account_ids, list):
            logger.warning("accountsDeleted event %s has no accountIds list; ignoring", event.event_id)
            return None
        self._reconciler.remove(db, customer_id, account_ids)
        if self._reconciler.list_active(db, customer_id):
            logger.info("Customer %s still has active accounts; status unchanged", customer_id)
            return None
        return self._transition(db, customer_id, LinkageStatus.PENDING)

    def _transition(self, db: Session, customer_id: str, status: LinkageStatus) -> LinkageStatus | None:
        if self._registry.set_status(db, customer_id, status):
            return status
        return None
