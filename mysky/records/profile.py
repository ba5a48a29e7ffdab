from typing import Optional

from mysky import lexicons
from mysky.context import RepoContext
from mysky.lexicons import MAX_TOP_FRIENDS, SELF_RKEY, TOM_DID
from mysky.records.base import put_or_create


def get_myspace_profile(ctx: RepoContext, did: str) -> Optional[dict]:
    return ctx.public.get_value(did, lexicons.PROFILE, SELF_RKEY)


def save_myspace_profile(ctx: RepoContext, profile: dict) -> dict:
    did = ctx.require_did()
    record = {**profile, "$type": lexicons.PROFILE}
    put_or_create(ctx.client, did, lexicons.PROFILE, SELF_RKEY, record)
    return record


def get_top_friends(ctx: RepoContext, did: str) -> list[str]:
    """Ordered friend DIDs; accounts that never saved a list start with Tom."""
    value = ctx.public.get_value(did, lexicons.TOP_FRIENDS, SELF_RKEY)
    if value is None:
        return [TOM_DID]
    return list(value.get("friends") or [])


def save_top_friends(ctx: RepoContext, friends: list[str]) -> dict:
    did = ctx.require_did()
    record = {
        "$type": lexicons.TOP_FRIENDS,
        "friends": list(friends)[:MAX_TOP_FRIENDS],
        "updatedAt": lexicons.now_iso(),
    }
    put_or_create(ctx.client, did, lexicons.TOP_FRIENDS, SELF_RKEY, record)
    return record
