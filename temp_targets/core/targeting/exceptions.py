"""Temp target exceptions."""


class EmptyLedgerError(LookupError):
    """The activation ledger has no records; it must be seeded first."""


class PersistenceFailure(Exception):
    """A repository write could not be committed."""

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Failed to persist {operation}: {cause}")
