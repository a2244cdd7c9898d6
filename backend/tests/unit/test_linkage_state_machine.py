"""Tests for LinkageStateMachine transitions."""

import pytest

from models import ACCOUNT_STATUS_REMOVED, BankAccount, CustomerMapping, LinkageStatus
from services.linkage_state_machine import LinkageStateMachine, WebhookEvent
from tests.fixtures import SAMPLE_ACCOUNTS, create_bank_account, create_mapping


@pytest.fixture
def machine():
    return LinkageStateMachine()


def _event(event_type, payload=None, customer_id="cust-1001"):
    return WebhookEvent(
        event_type=event_type,
        event_id="evt-1",
        customer_id=customer_id,
        payload=payload or {},
    )


def _status(db, customer_id="cust-1001"):
    mapping = db.query(CustomerMapping).filter_by(aggregator_customer_id=customer_id).one()
    db.refresh(mapping)
    return mapping.status


class TestProgressEvents:
    @pytest.mark.parametrize("event_type", ["started", "discovered", "adding"])
    def test_progress_changes_nothing(self, db, machine, mapping, event_type):
        assert machine.route(db, _event(event_type)) is None
        assert _status(db) == "not_linked"

    def test_unknown_event_type_ignored(self, db, machine, mapping):
        assert machine.route(db, _event("somethingNew")) is None
        assert _status(db) == "not_linked"

    def test_ping_ignored(self, db, machine, mapping):
        assert machine.route(db, _event("ping", customer_id=None)) is None


class TestAdded:
    def test_upserts_accounts_and_links(self, db, machine, mapping):
        result = machine.route(db, _event("added", {"accounts": SAMPLE_ACCOUNTS}))
        db.commit()

        assert result == LinkageStatus.LINKED
        assert _status(db) == "linked"
        assert db.query(BankAccount).count() == 2

    def test_missing_accounts_list_ignored(self, db, machine, mapping):
        assert machine.route(db, _event("added", {"accounts": "nope"})) is None
        assert _status(db) == "not_linked"

    def test_empty_accounts_still_links(self, db, machine, mapping):
        assert machine.route(db, _event("added", {"accounts": []})) == LinkageStatus.LINKED


class TestDone:
    def test_with_accounts_links(self, db, machine, mapping):
        result = machine.route(db, _event("done", {"accounts": SAMPLE_ACCOUNTS[:1]}))
        db.commit()
        assert result == LinkageStatus.LINKED
        assert db.query(BankAccount).count() == 1

    def test_without_accounts_pending(self, db, machine, mapping):
        assert machine.route(db, _event("done", {"accounts": []})) == LinkageStatus.PENDING
        assert _status(db) == "pending"

    def test_without_payload_pending(self, db, machine, mapping):
        assert machine.route(db, _event("done")) == LinkageStatus.PENDING

    def test_done_after_linked_without_accounts_goes_pending(self, db, machine):
        create_mapping(db, status=LinkageStatus.LINKED)
        machine.route(db, _event("done"))
        db.commit()
        assert _status(db) == "pending"


class TestErrors:
    @pytest.mark.parametrize("event_type", ["unableToConnect", "invalidCredentials"])
    def test_error_events(self, db, machine, mapping, event_type):
        assert machine.route(db, _event(event_type)) == LinkageStatus.ERROR
        db.commit()
        assert _status(db) == "error"

    def test_error_keeps_existing_accounts(self, db, machine, mapping):
        create_bank_account(db, account_id="a1")
        machine.route(db, _event("invalidCredentials"))
        db.commit()
        assert db.get(BankAccount, "a1").status == "active"


class TestAccountsDeleted:
    def test_removes_accounts_and_goes_pending(self, db, machine):
        create_mapping(db, status=LinkageStatus.LINKED)
        create_bank_account(db, account_id="a1")
        create_bank_account(db, account_id="a2")

        result = machine.route(db, _event("accountsDeleted", {"accountIds": ["a1", "a2"]}))
        db.commit()

        assert result == LinkageStatus.PENDING
        assert _status(db) == "pending"
        assert db.get(BankAccount, "a1").status == ACCOUNT_STATUS_REMOVED
        assert db.get(BankAccount, "a2").status == ACCOUNT_STATUS_REMOVED

    def test_partial_removal_stays_linked(self, db, machine):
        create_mapping(db, status=LinkageStatus.LINKED)
        create_bank_account(db, account_id="a1")
        create_bank_account(db, account_id="a2")

        result = machine.route(db, _event("accountsDeleted", {"accountIds": ["a1"]}))
        db.commit()

        assert result is None
        assert _status(db) == "linked"
        assert db.get(BankAccount, "a1").status == ACCOUNT_STATUS_REMOVED
        assert db.get(BankAccount, "a2").status == "active"

    def test_missing_account_ids_ignored(self, db, machine):
        create_mapping(db, status=LinkageStatus.LINKED)
        assert machine.route(db, _event("accountsDeleted", {})) is None
        assert _status(db) == "linked"


class TestOrphans:
    def test_unknown_customer_discarded(self, db, machine):
        assert machine.route(db, _event("added", {"accounts": SAMPLE_ACCOUNTS}, customer_id="cust-ghost")) is None
        assert db.query(BankAccount).count() == 0

    def test_missing_customer_id_discarded(self, db, machine):
        assert machine.route(db, _event("done", customer_id=None)) is None


class TestOrdering:
    def test_late_progress_event_does_not_regress(self, db, machine, mapping):
        machine.route(db, _event("added", {"accounts": SAMPLE_ACCOUNTS}))
        machine.route(db, _event("started"))
        db.commit()
        assert _status(db) == "linked"

    def test_last_write_wins(self, db, machine, mapping):
        machine.route(db, _event("added", {"accounts": SAMPLE_ACCOUNTS}))
        machine.route(db, _event("unableToConnect"))
        db.commit()
        assert _status(db) == "error"
