"""Test fixtures and sample data."""
import pytest
from decimal import Decimal

from models import BankAccount, CustomerMapping, LinkageStatus
from sqlalchemy.orm import Session

from tests.fixtures.signing import generate_key_pair


def create_mapping(
    db: Session,
    platform_client_id: str = "client-1",
    aggregator_customer_id: str = "cust-1001",
    status: LinkageStatus = LinkageStatus.NOT_LINKED,
) -> CustomerMapping:
    """Create and commit a CustomerMapping."""
    mapping = CustomerMapping(
        platform_client_id=platform_client_id,
        aggregator_customer_id=aggregator_customer_id,
        status=status.value,
    )
    db.add(mapping)
    db.commit()
    db.refresh(mapping)
    return mapping


def create_bank_account(
    db: Session,
    account_id: str = "acct-1",
    aggregator_customer_id: str = "cust-1001",
    name: str = "Checking",
    balance: Decimal = Decimal("100.00"),
    status: str = "active",
) -> BankAccount:
    """Create and commit a BankAccount."""
    account = BankAccount(
        id=account_id,
        aggregator_customer_id=aggregator_customer_id,
        name=name,
        type="checking",
        balance=balance,
        currency="USD",
        status=status,
    )
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


SAMPLE_ACCOUNTS = [
    {
        "id": "5011648377",
        "number": "2345",
        "name": "Checking",
        "type": "checking",
        "status": "active",
        "balance": 501.24,
        "currency": "USD",
        "institutionId": "101732",
        "createdDate": 1700000000,
        "lastUpdatedDate": 1700000500,
    },
    {
        "id": "5011648378",
        "number": "9876",
        "name": "Savings",
        "type": "savings",
        "status": "active",
        "balance": "12000.5",
        "currency": "USD",
        "institutionId": "101732",
    },
]


@pytest.fixture
def mapping(db):
    """A not-yet-linked customer mapping for client-1 / cust-1001."""
    return create_mapping(db)


@pytest.fixture(scope="session")
def signing_keys():
    """A P-256 key pair shared across the session: (private_key, public_pem)."""
    return generate_key_pair()
