# teleload/entitlement.py
from __future__ import annotations

import datetime as _dt
import enum
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .config import TRIAL_HOURS


def utcnow() -> _dt.datetime:
    # Mongo hands back naive UTC datetimes; keep everything naive UTC.
    return _dt.datetime.now(_dt.timezone.utc).replace(tzinfo=None)


def _as_naive_utc(value: Any) -> Optional[_dt.datetime]:
    if not isinstance(value, _dt.datetime):
        return None
    if value.tzinfo is not None:
        value = value.astimezone(_dt.timezone.utc).replace(tzinfo=None)
    return value


class Tier(str, enum.Enum):
    PRO = "pro"
    TRIAL = "trial"
    EXPIRED = "expired"


@dataclass(frozen=True)
class TierInfo:
    tier: Tier
    until: Optional[_dt.datetime]  # pro_end / trial end; None = open-ended PRO

    @property
    def is_pro(self) -> bool:
        return self.tier is Tier.PRO

    @property
    def has_access(self) -> bool:
        return self.tier is not Tier.EXPIRED


def trial_end(user: Mapping[str, Any]) -> Optional[_dt.datetime]:
    start = _as_naive_utc(user.get("trial_start"))
    if start is None:
        return None
    return start + _dt.timedelta(hours=TRIAL_HOURS)


def evaluate(user: Mapping[str, Any], now: Optional[_dt.datetime] = None) -> Tier:
    """
    PRO     -> is_pro and (pro_end is None or pro_end > now)
    TRIAL   -> not PRO and now < trial_start + TRIAL_HOURS
    EXPIRED -> otherwise
    """
    now = _as_naive_utc(now) or utcnow()
    pro_end = _as_naive_utc(user.get("pro_end"))
    if user.get("is_pro") and (pro_end is None or pro_end > now):
        return Tier.PRO
    t_end = trial_end(user)
    if t_end is not None and now < t_end:
        return Tier.TRIAL
    return Tier.EXPIRED


def describe(user: Mapping[str, Any], now: Optional[_dt.datetime] = None) -> TierInfo:
    tier = evaluate(user, now)
    if tier is Tier.PRO:
        return TierInfo(tier, _as_naive_utc(user.get("pro_end")))
    if tier is Tier.TRIAL:
        return TierInfo(tier, trial_end(user))
    return TierInfo(tier, None)


def fmt_until(value: Optional[_dt.datetime]) -> str:
    if value is None:
        return "∞"
    return value.strftime("%Y-%m-%d %H:%M UTC")
