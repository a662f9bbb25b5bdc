import enum
import logging
import threading

from invites.errors import GenerationError, OperationInProgress
from invites.issuer import DEFAULT_MAX_ATTEMPTS, BatchIssuer
from invites.models import SingleUseCode
from invites.redeemer import RedemptionCoordinator
from storage.record_store import RecordStore, StoreError

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5


class LoadState(enum.Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"


class InviteCodeManager:
    """Entry point the UI talks to for issuing, listing and redeeming codes."""

    def __init__(
        self,
        store: RecordStore,
        default_batch_size: int = DEFAULT_BATCH_SIZE,
        max_batch_attempts: int = DEFAULT_MAX_ATTEMPTS,
        issuer: BatchIssuer | None = None,
        redeemer: RedemptionCoordinator | None = None,
    ) -> None:
        self._store = store
        self._default_batch_size = default_batch_size
        self._issuer = issuer or BatchIssuer(store, max_attempts=max_batch_attempts)
        self._redeemer = redeemer or RedemptionCoordinator(store)
        self._state = LoadState.IDLE
        self._state_lock = threading.Lock()

    @property
    def state(self) -> LoadState:
        return self._state

    def issue_codes(self, user_id: str, count: int | None = None) -> list[SingleUseCode]:
        if count is None:
            count = self._default_batch_size
        return self._issuer.issue_batch(count, generated_by_user_id=user_id)

    def redeem(self, code: str, user_id: str) -> SingleUseCode:
        return self._redeemer.redeem(code, user_id)

    def codes_for_user(self, user_id: str, known_codes: list[str]) -> list[SingleUseCode]:
        """Return the user's codes, issuing a fresh batch if they have none yet.

        Known codes that no longer exist in the store are skipped.
        """
        self._begin_load()
        try:
            if known_codes:
                codes = self._fetch_known(known_codes)
            else:
                codes = self.issue_codes(user_id)
        finally:
            self._end_load()
        return sorted(codes, key=lambda invite: invite.code)

    def _fetch_known(self, known_codes: list[str]) -> list[SingleUseCode]:
        try:
            records = self._store.batch_fetch(known_codes)
        except StoreError as e:
            raise GenerationError(e) from e

        missing = [code for code, record in records.items() if record is None]
        if missing:
            logger.info("Skipping %d codes missing from the store", len(missing))
        return [SingleUseCode.from_record(record) for record in records.values() if record is not None]

    def _begin_load(self) -> None:
        with self._state_lock:
            if self._state is LoadState.IN_FLIGHT:
                raise OperationInProgress()
            self._state = LoadState.IN_FLIGHT

    def _end_load(self) -> None:
        with self._state_lock:
            self._state = LoadState.IDLE
