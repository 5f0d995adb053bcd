"""Error taxonomy for intents entering the engine"""

from typing import Optional


class FieldSalesError(Exception):
    """Base class for errors reported back to the caller of an intent"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FieldSalesError):
    """Missing required field, past date or malformed value. Nothing was mutated."""


class NotFoundError(FieldSalesError):
    """An identifier did not reference an existing entity"""


class InvalidTransitionError(FieldSalesError):
    """A visit in a terminal status was asked to transition again"""


class SyncWarning(UserWarning):
    """
    Remote persistence failed after the local mutation was applied.

    Never raised into the mutation path; carried on sync receipts and handed
    to the session's warning callback so the UI can surface it asynchronously.
    """

    def __init__(
        self, kind: str, operation: str, entity_id: Optional[str], error: BaseException
    ):
        self.kind = kind
        self.operation = operation
        self.entity_id = entity_id
        self.error = error
        target = f"{kind} {entity_id}" if entity_id else kind
        super().__init__(f"Failed to {operation} {target}: {error}")

    @property
    def message(self) -> str:
        return str(self)
