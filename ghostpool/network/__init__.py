"""
Ghost Pool Ledger Access
"""

from ghostpool.network.retry import RetryPolicy
from ghostpool.network.rpc import LedgerClient

__all__ = [
    "RetryPolicy",
    "LedgerClient",
]
