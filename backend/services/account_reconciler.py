"""Bank account reconciliation against aggregator reports."""

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import Session

from models import ACCOUNT_STATUS_ACTIVE, ACCOUNT_STATUS_REMOVED, BankAccount

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNT_NAME = "Unnamed account"
DEFAULT_ACCOUNT_TYPE = "unknown"
DEFAULT_CURRENCY = "USD"


def _parse_balance(value) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        logger.warning("Unparseable account balance %r, defaulting to 0", value)
        return Decimal("0")


def _parse_epoch(value) -> datetime | None:
    """Aggregator dates are epoch seconds; anything else is ignored."""
    if value in (None, ""):
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


class AccountReconciler:
    """Upserts and removes BankAccount rows for one aggregator customer."""

    @staticmethod
    def upsert(db: Session, aggregator_customer_id: str, accounts: list[dict]) -> int:
        """Create or update accounts reported by the aggregator.

        Each account is applied in its own savepoint so one bad entry
        cannot fail the batch. Entries without an id, or whose id already
        belongs to another customer, are skipped with a warning.

        Returns:
            Number of accounts written.
        """
        written = 0
        for raw in accounts:
            if not isinstance(raw, dict):
                logger.warning("Skipping non-object account entry for customer %s", aggregator_customer_id)
                continue
            account_id = raw.get("id")
            if account_id in (None, ""):
                logger.warning(
                    "Skipping account without id for customer %s: %r",
                    aggregator_customer_id, raw.get("name"),
                )
                continue
            account_id = str(account_id)

            try:
                with db.begin_nested():
                    if AccountReconciler._apply(db, aggregator_customer_id, account_id, raw):
                        written += 1
            except Exception as e:
                logger.warning(
                    "Failed to upsert account %s for customer %s: %s",
                    account_id, aggregator_customer_id, e,
                )

        logger.info(
            "Upserted %d of %d accounts for customer %s",
            written, len(accounts), aggregator_customer_id,
        )
        return written

    @staticmethod
    def _apply(db: Session, aggregator_customer_id: str, account_id: str, raw: dict) -> bool:
        now = datetime.now(timezone.utc)
        reported_updated = _parse_epoch(raw.get("lastUpdatedDate")) or now
        institution_id = raw.get("institutionId")

        account = db.get(BankAccount, account_id)
        if account is not None and account.aggregator_customer_id != aggregator_customer_id:
            logger.warning(
                "Account %s belongs to customer %s, not %s; skipping",
                account_id, account.aggregator_customer_id, aggregator_customer_id,
            )
            return False

        if account is None:
            account = BankAccount(
                id=account_id,
                aggregator_customer_id=aggregator_customer_id,
                created_at=_parse_epoch(raw.get("createdDate")) or now,
            )
            db.add(account)

        account.name = raw.get("name") or DEFAULT_ACCOUNT_NAME
        account.type = raw.get("type") or DEFAULT_ACCOUNT_TYPE
        account.balance = _parse_balance(raw.get("balance"))
        account.currency = raw.get("currency") or DEFAULT_CURRENCY
        account.institution_id = str(institution_id) if institution_id is not None else None
        account.status = ACCOUNT_STATUS_ACTIVE
        account.last_updated_at = reported_updated
        db.flush()
        return True

    @staticmethod
    def remove(db: Session, aggregator_customer_id: str, account_ids: list) -> int:
        """Mark accounts removed, matching both the customer and the ids.

        Returns:
            Number of accounts marked removed.
        """
        ids = [str(i) for i in account_ids if i not in (None, "")]
        if not ids:
            return 0

        accounts = (
            db.query(BankAccount)
            .filter(
                BankAccount.aggregator_customer_id == aggregator_customer_id,
                BankAccount.id.in_(ids),
                BankAccount.status == ACCOUNT_STATUS_ACTIVE,
            )
            .all()
        )
        now = datetime.now(timezone.utc)
        for account in accounts:
            account.status = ACCOUNT_STATUS_REMOVED
            account.last_updated_at = now
        db.flush()

        if len(accounts) < len(ids):
            logger.info(
                "%d of %d deleted account ids were not active for customer %s",
                len(ids) - len(accounts), len(ids), aggregator_customer_id,
            )
        logger.info("Removed %d accounts for customer %s", len(accounts), aggregator_customer_id)
        return len(accounts)

    @staticmethod
    def list_active(db: Session, aggregator_customer_id: str) -> list[BankAccount]:
        """Active accounts for a customer, by name."""
        return (
            db.query(BankAccount)
            .filter(
                BankAccount.aggregator_customer_id == aggregator_customer_id,
                BankAccount.status == ACCOUNT_STATUS_ACTIVE,
            )
            .order_by(BankAccount.name)
            .all()
        )
