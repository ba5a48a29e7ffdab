from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from atproto_core.exceptions import AtProtocolError

from mysky.context import RepoContext
from mysky.logger import logger
from mysky.records.base import as_dict

MAX_PROFILE_WORKERS = 8


def resolve_handle(ctx: RepoContext, handle: str) -> Optional[str]:
    if ctx.client is None:
        return None
    try:
        response = ctx.client.com.atproto.identity.resolve_handle({"handle": handle.lstrip("@")})
    except AtProtocolError as e:
        logger.debug("Could not resolve handle %s: %s", handle, e)
        return None
    return response.did


def _get_profile(client, did: str) -> Optional[dict]:
    try:
        return as_dict(client.get_profile(did))
    except AtProtocolError as e:
        logger.debug("Could not fetch profile %s: %s", did, e)
        return None


def get_profiles(ctx: RepoContext, dids: list[str]) -> list[dict]:
    """Fetch profiles in parallel, keeping input order and dropping failures."""
    if ctx.client is None or not dids:
        return []
    workers = min(MAX_PROFILE_WORKERS, len(dids))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        profiles = list(executor.map(lambda did: _get_profile(ctx.client, did), dids))
    return [p for p in profiles if p]


def search_users(ctx: RepoContext, query: str, limit: int = 20) -> list[dict]:
    if ctx.client is None:
        return []
    try:
        response = ctx.client.app.bsky.actor.search_actors({"q": query, "limit": limit})
    except AtProtocolError as e:
        logger.debug("Actor search for %r failed: %s", query, e)
        return []
    return [as_dict(actor) for actor in response.actors]
