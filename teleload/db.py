# teleload/db.py
from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, IndexModel, ReturnDocument

from .config import (
    MONGO_URI,
    MONGO_DB_NAME,
    COL_USERS,
    COL_DOWNLOADS,
    DEFAULT_LANGUAGE,
    REFERRAL_BONUS_DAYS,
    REFERRAL_BONUS_LIMIT,
    TRIAL_HOURS,
)
from .entitlement import utcnow

_DAY_MS = 24 * 3600 * 1000


class DBError(RuntimeError):
    pass


def referral_reward_stage(
    now: _dt.datetime,
    days: int = REFERRAL_BONUS_DAYS,
    limit: int = REFERRAL_BONUS_LIMIT,
) -> Dict[str, Any]:
    """
    `$set` stage of the referrer's pipeline update:
        referral_count + 1
        is_pro = True, pro_end = max(pro_end, now) + days
    With limit > 0 only referrals below the limit carry the bonus.
    """
    count = {"$ifNull": ["$referral_count", 0]}
    grant: Any = True if limit <= 0 else {"$lt": [count, limit]}
    new_end = {"$add": [{"$max": [{"$ifNull": ["$pro_end", now]}, now]}, int(days) * _DAY_MS]}
    return {
        "referral_count": {"$add": [count, 1]},
        "is_pro": {"$cond": [grant, True, {"$ifNull": ["$is_pro", False]}]},
        "pro_end": {"$cond": [grant, new_end, "$pro_end"]},
        "updated_at": now,
    }


@dataclass
class DB:
    client: AsyncIOMotorClient
    db: AsyncIOMotorDatabase

    @classmethod
    async def connect(cls) -> "DB":
        if not MONGO_URI:
            raise DBError("MONGO_URI is not set. Please set MONGO_URI in environment.")
        client = AsyncIOMotorClient(MONGO_URI)
        db = client[MONGO_DB_NAME]
        inst = cls(client=client, db=db)
        await inst.ensure_indexes()
        return inst

    async def ensure_indexes(self) -> None:
        await self.db[COL_USERS].create_indexes([
            IndexModel([("user_id", ASCENDING)], unique=True),
            IndexModel([("created_at", DESCENDING)]),
        ])
        await self.db[COL_DOWNLOADS].create_indexes([
            IndexModel([("user_id", ASCENDING)]),
            IndexModel([("created_at", DESCENDING)]),
        ])

    async def close(self) -> None:
        self.client.close()

    # --------------------------
    # Users
    # --------------------------
    async def get_user_by_external_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self.db[COL_USERS].find_one({"user_id": str(user_id)})

    async def create_user(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        now = utcnow()
        doc = {
            "user_id": str(fields["user_id"]),
            "username": fields.get("username"),
            "first_name": fields.get("first_name"),
            "is_pro": bool(fields.get("is_pro", False)),
            "trial_start": fields.get("trial_start") or now,
            "pro_end": fields.get("pro_end"),
            "referred_by": None,
            "referral_count": 0,
            "language": fields.get("language") or DEFAULT_LANGUAGE,
            "created_at": now,
            "updated_at": now,
        }
        await self.db[COL_USERS].insert_one(doc)
        return doc

    async def update_user(self, user_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        patch = dict(patch)
        patch["updated_at"] = utcnow()
        return await self.db[COL_USERS].find_one_and_update(
            {"user_id": str(user_id)},
            {"$set": patch},
            return_document=ReturnDocument.AFTER,
        )

    async def ensure_user(self, user_id: str, username: Optional[str] = None, first_name: Optional[str] = None) -> Dict[str, Any]:
        """First contact creates the user (and starts the trial); later calls refresh display fields."""
        doc = await self.get_user_by_external_id(user_id)
        if doc is None:
            return await self.create_user({"user_id": user_id, "username": username, "first_name": first_name})
        if doc.get("username") != username or doc.get("first_name") != first_name:
            updated = await self.update_user(user_id, {"username": username, "first_name": first_name})
            return updated or doc
        return doc

    async def set_language(self, user_id: str, lang: str) -> None:
        await self.update_user(user_id, {"language": lang})

    async def set_pro(self, user_id: str, is_pro: bool, duration_days: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """
        Enable: pro_end = now + duration_days (no days -> open-ended PRO).
        Disable: pro_end cleared.
        Returns the updated user, or None if there is no such user.
        """
        patch: Dict[str, Any] = {"is_pro": bool(is_pro)}
        if is_pro and duration_days:
            patch["pro_end"] = utcnow() + _dt.timedelta(days=int(duration_days))
        else:
            patch["pro_end"] = None
        return await self.update_user(user_id, patch)

    async def add_referral(self, user_id: str, referrer_id: str) -> bool:
        """
        Link `user_id` to `referrer_id` and reward the referrer.

        referred_by is written only while it is still unset, so a user can be
        referred at most once. The referrer update is a single pipeline update:
        referral_count + 1, is_pro = True, pro_end = max(pro_end, now) + bonus.
        With REFERRAL_BONUS_LIMIT > 0 only the first N referrals carry the bonus.
        """
        user_id, referrer_id = str(user_id), str(referrer_id)
        if user_id == referrer_id:
            return False
        users = self.db[COL_USERS]
        if await users.find_one({"user_id": referrer_id}) is None:
            return False

        now = utcnow()
        res = await users.update_one(
            {"user_id": user_id, "referred_by": None},
            {"$set": {"referred_by": referrer_id, "updated_at": now}},
        )
        if res.modified_count != 1:
            return False

        await users.update_one({"user_id": referrer_id}, [{"$set": referral_reward_stage(now)}])
        return True

    # --------------------------
    # Downloads
    # --------------------------
    async def record_download(self, user_id: str, url: str, is_watermarked: bool) -> Dict[str, Any]:
        doc = {
            "user_id": str(user_id),
            "video_url": url,
            "is_watermarked": bool(is_watermarked),
            "created_at": utcnow(),
        }
        await self.db[COL_DOWNLOADS].insert_one(doc)
        return doc

    # --------------------------
    # Stats (admin)
    # --------------------------
    async def get_stats(self, now: Optional[_dt.datetime] = None) -> Dict[str, int]:
        now = now or utcnow()
        users = self.db[COL_USERS]
        total_users = await users.count_documents({})
        pro_users = await users.count_documents({
            "is_pro": True,
            "$or": [{"pro_end": None}, {"pro_end": {"$gt": now}}],
        })
        active_trials = await users.count_documents({
            "trial_start": {"$gt": now - _dt.timedelta(hours=TRIAL_HOURS)},
        })
        total_downloads = await self.db[COL_DOWNLOADS].count_documents({})
        return {
            "total_users": int(total_users),
            "pro_users": int(pro_users),
            "total_downloads": int(total_downloads),
            "active_trials": int(active_trials),
        }

    async def downloads_by_user(self, limit: int = 20) -> List[Dict[str, Any]]:
        pipeline = [
            {"$group": {"_id": "$user_id", "downloads": {"$sum": 1}}},
            {"$sort": {"downloads": -1}},
            {"$limit": int(limit)},
            {"$lookup": {"from": COL_USERS, "localField": "_id", "foreignField": "user_id", "as": "user"}},
            {"$unwind": {"path": "$user", "preserveNullAndEmptyArrays": True}},
            {"$project": {
                "_id": 0,
                "user_id": "$_id",
                "username": "$user.username",
                "first_name": "$user.first_name",
                "downloads": 1,
            }},
        ]
        cursor = self.db[COL_DOWNLOADS].aggregate(pipeline)
        return [doc async for doc in cursor]

    async def recent_users(self, limit: int = 5) -> List[Dict[str, Any]]:
        cursor = self.db[COL_USERS].find({}).sort("created_at", DESCENDING).limit(limit)
        return [doc async for doc in cursor]
