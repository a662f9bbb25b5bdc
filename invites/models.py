from dataclasses import dataclass, field
from datetime import datetime

from invites.generator import generate_code

SINGLE_USE_RECORD_TYPE = "InviteCode"
MULTI_USE_RECORD_TYPE = "MultiUseInviteCode"

EARLY_ACCESS_URL = "https://anyd.ist/early-access"


def _parse_date(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _format_date(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class SingleUseCode:
    code: str
    used: bool = False
    used_by_user_id: str | None = None
    generated_by_user_id: str | None = None
    creation_date: datetime | None = None
    version: int = 0

    @classmethod
    def new(cls, generated_by_user_id: str | None = None) -> "SingleUseCode":
        return cls(code=generate_code(), generated_by_user_id=generated_by_user_id)

    @classmethod
    def from_record(cls, record: dict) -> "SingleUseCode":
        return cls(
            code=record["code"],
            used=bool(record.get("used", False)),
            used_by_user_id=record.get("used_by_user_id"),
            generated_by_user_id=record.get("generated_by_user_id"),
            creation_date=_parse_date(record.get("created_at")),
            version=int(record.get("version", 0)),
        )

    def to_record(self) -> dict:
        return {
            "code": self.code,
            "record_type": SINGLE_USE_RECORD_TYPE,
            "used": self.used,
            "used_by_user_id": self.used_by_user_id,
            "generated_by_user_id": self.generated_by_user_id,
            "created_at": _format_date(self.creation_date),
        }

    @property
    def share_message(self) -> str:
        return (
            "Hey! I thought you might like early access to the new activity tracking "
            f"experience. Your invite code is {self.code} if you want in. "
            f"Get started here: {EARLY_ACCESS_URL}"
        )


@dataclass
class MultiUseCode:
    """A code many different users can redeem, e.g. for a tiered reward.

    Only the data shape lives here; nothing redeems multi-use codes yet.
    """

    code: str
    tiered_reward_id: str
    generated_by_user_id: str | None = None
    redeemed_by_user_ids: list[str] = field(default_factory=list)
    creation_date: datetime | None = None
    version: int = 0

    @classmethod
    def new(cls, tiered_reward_id: str, generated_by_user_id: str | None = None) -> "MultiUseCode":
        return cls(
            code=generate_code(),
            tiered_reward_id=tiered_reward_id,
            generated_by_user_id=generated_by_user_id,
        )

    @classmethod
    def from_record(cls, record: dict) -> "MultiUseCode":
        return cls(
            code=record["code"],
            tiered_reward_id=record.get("tiered_reward_id") or "",
            generated_by_user_id=record.get("generated_by_user_id"),
            redeemed_by_user_ids=list(record.get("redeemed_by_user_ids") or []),
            creation_date=_parse_date(record.get("created_at")),
            version=int(record.get("version", 0)),
        )

    def to_record(self) -> dict:
        return {
            "code": self.code,
            "record_type": MULTI_USE_RECORD_TYPE,
            "generated_by_user_id": self.generated_by_user_id,
            "redeemed_by_user_ids": list(self.redeemed_by_user_ids),
            "tiered_reward_id": self.tiered_reward_id,
            "created_at": _format_date(self.creation_date),
        }
