"""
Error types raised by the row store and the ops kernel.
"""

from typing import List


class OpsKernelError(Exception):
    """Base class for ops kernel errors."""


class RowStoreError(OpsKernelError):
    """A row store call failed (transport error or non-2xx response)."""

    def __init__(self, message: str, method: str = None, table: str = None, status_code: int = None):
        super().__init__(message)
        self.method = method
        self.table = table
        self.status_code = status_code


class StoreNotConfiguredError(OpsKernelError):
    """The row store URL or service credential is missing."""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required Supabase env var(s): {', '.join(self.missing)}")


class ProposalNotFoundError(OpsKernelError):
    """No proposal exists with the requested id."""


class ProposalStateError(OpsKernelError):
    """The proposal cannot make the requested transition."""
