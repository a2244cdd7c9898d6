"""External API integrations.

This package contains:
- Open banking config: explicit settings for the aggregator components
- Partner token provider: fresh partner tokens per operation
- Open banking client: customers, Connect email, and account reads
"""

from integrations.open_banking_client import OpenBankingClient
from integrations.open_banking_config import OpenBankingConfig
from integrations.partner_token_provider import PartnerTokenProvider, TokenProvider

__all__ = [
    "OpenBankingClient",
    "OpenBankingConfig",
    "PartnerTokenProvider",
    "TokenProvider",
]
