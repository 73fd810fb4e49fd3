"""
Domain Errors - Error taxonomy shared by balances and reports.
"""


class LedgerError(Exception):
    """Base class for all domain errors."""


class NotFoundError(LedgerError):
    """Entity (customer, supplier, cash account) does not exist."""

    def __init__(self, entity_type: str, entity_id: int):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} {entity_id} not found")


class InvalidArgumentError(LedgerError, ValueError):
    """Malformed filter, preset, date range or report parameter."""


class StorageError(LedgerError):
    """Ledger or snapshot store I/O failure."""
