import logging

from invites.errors import AlreadyUsed, InvalidCode, RedemptionError
from invites.generator import normalize_code
from invites.models import SINGLE_USE_RECORD_TYPE, SingleUseCode
from storage.record_store import RecordNotFound, RecordStore, StoreError, VersionConflict

logger = logging.getLogger(__name__)


class RedemptionCoordinator:
    """Redeem single-use codes.

    Redemption is a read followed by a save conditioned on the version that was
    read. No local lock is involved: when several clients race on the same
    code, the store accepts exactly one save and the rest get RedemptionError.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def redeem(self, code: str, redeeming_user_id: str) -> SingleUseCode:
        code = normalize_code(code)
        if not code:
            raise InvalidCode(code)

        try:
            record = self._store.fetch_record(code)
        except RecordNotFound as e:
            raise InvalidCode(code, InvalidCode.NOT_FOUND) from e
        except StoreError as e:
            logger.warning("Could not fetch %s: %s", code, e)
            raise InvalidCode(code, InvalidCode.FETCH_FAILED) from e

        # Multi-use codes share the table but are not redeemable here
        if record.get("record_type", SINGLE_USE_RECORD_TYPE) != SINGLE_USE_RECORD_TYPE:
            logger.info("Refusing to redeem %s of type %s", code, record.get("record_type"))
            raise InvalidCode(code, InvalidCode.NOT_FOUND)

        invite = SingleUseCode.from_record(record)
        if invite.used:
            raise AlreadyUsed(code)

        invite.used = True
        invite.used_by_user_id = redeeming_user_id

        try:
            saved = self._store.conditional_save(invite.to_record(), expected_version=invite.version)
        except VersionConflict as e:
            logger.info("Lost redemption race for %s", code)
            raise RedemptionError(code, RedemptionError.CONFLICT) from e
        except StoreError as e:
            logger.error("Saving redemption of %s failed: %s", code, e)
            raise RedemptionError(code, RedemptionError.STORE_ERROR) from e

        invite.version = saved["version"]
        return invite
