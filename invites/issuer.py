import logging
from collections.abc import Callable

from invites.errors import ExhaustedRetries, GenerationError
from invites.generator import generate_code
from invites.models import SingleUseCode
from storage.record_store import RecordStore, StoreError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_MAX_BATCH_SIZE = 100


class BatchIssuer:
    """Issue batches of brand-new single-use codes.

    A batch is checked against the store as a whole. If any candidate already
    exists, every candidate is thrown away and a new batch is drawn, so a
    partially colliding batch is never saved.
    """

    def __init__(
        self,
        store: RecordStore,
        code_generator: Callable[[], str] | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
    ) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts must be greater than zero")
        self._store = store
        self._code_generator = code_generator or generate_code
        self._max_attempts = max_attempts
        self._max_batch_size = max_batch_size

    def issue_batch(self, count: int, generated_by_user_id: str | None = None) -> list[SingleUseCode]:
        if count < 1:
            return []
        if count > self._max_batch_size:
            raise ValueError(f"count must be at most {self._max_batch_size}, got {count}")

        for attempt in range(1, self._max_attempts + 1):
            candidates = [
                SingleUseCode(code=self._code_generator(), generated_by_user_id=generated_by_user_id)
                for _ in range(count)
            ]
            if self._is_collision_free(candidates):
                return self._persist(candidates)
            logger.info("Discarding batch of %d after collision (attempt %d)", count, attempt)

        raise ExhaustedRetries(self._max_attempts)

    def _is_collision_free(self, candidates: list[SingleUseCode]) -> bool:
        codes = [candidate.code for candidate in candidates]
        if len(set(codes)) != len(codes):
            return False

        try:
            existing = self._store.batch_fetch(codes)
        except StoreError as e:
            logger.error("Collision check failed: %s", e)
            raise GenerationError(e) from e

        return all(existing.get(code) is None for code in codes)

    def _persist(self, candidates: list[SingleUseCode]) -> list[SingleUseCode]:
        try:
            saved = self._store.batch_save([candidate.to_record() for candidate in candidates])
        except StoreError as e:
            logger.error("Saving batch of %d failed: %s", len(candidates), e)
            raise GenerationError(e) from e
        return [SingleUseCode.from_record(record) for record in saved]
