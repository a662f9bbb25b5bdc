from abc import ABC, abstractmethod


class StoreError(Exception):
    """The record store rejected or failed a request."""


class RecordNotFound(StoreError):
    def __init__(self, record_id: str):
        super().__init__(f"Record {record_id!r} not found")
        self.record_id = record_id


class VersionConflict(StoreError):
    def __init__(self, record_id: str, expected_version: int):
        super().__init__(
            f"Record {record_id!r} changed since version {expected_version}"
        )
        self.record_id = record_id
        self.expected_version = expected_version


class RecordStore(ABC):
    """
    Abstract interface for the shared remote record store.

    Records are plain dicts keyed by their "code" field. Every persisted record
    carries a "version" that the store bumps on each write, and a "created_at"
    the store assigns on first persistence.

    Swap implementations (DynamoDB, an in-memory double for tests, etc.) by
    injecting a different concrete subclass.
    """

    @abstractmethod
    def fetch_record(self, record_id: str) -> dict:
        """Return the record, or raise RecordNotFound / StoreError."""
        ...

    @abstractmethod
    def batch_fetch(self, record_ids: list[str]) -> dict[str, dict | None]:
        """Map every requested id to its record, or None when it does not exist."""
        ...

    @abstractmethod
    def conditional_save(self, record: dict, expected_version: int) -> dict:
        """Save only if the stored version still equals expected_version.

        Returns the saved record with its new version. Raises VersionConflict
        when the record changed in the meantime.
        """
        ...

    @abstractmethod
    def batch_save(self, records: list[dict]) -> list[dict]:
        """Insert all records atomically. Fails as a whole if any already exists."""
        ...
