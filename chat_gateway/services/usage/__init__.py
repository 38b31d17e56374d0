"""Usage accounting package exports."""

from .ledger import QuotaLedger
from .store import FileUsageStore, InMemoryUsageStore, UsageStore

__all__ = [
    "QuotaLedger",
    "UsageStore",
    "InMemoryUsageStore",
    "FileUsageStore",
]
