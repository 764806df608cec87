"""
Ledger services package.

- service: deposit, withdraw and explicit settlement
- results: typed operation results
"""

from app.services.ledger.results import LedgerResult
from app.services.ledger.service import LedgerService


__all__ = [
    "LedgerResult",
    "LedgerService",
]
