"""Bulletins and profile comments.

Comments live in the commenter's own repo, so reading a profile's wall means
asking the Constellation backlink index who linked to it, then topping that
up with direct scans of the target's repo (legacy comments) and the viewer's
repo (comments not yet indexed).
"""
from typing import Optional

import httpx

from mysky import config, lexicons
from mysky.context import RepoContext
from mysky.logger import logger
from mysky.records.base import create_record

BACKLINK_LIMIT = 50
FALLBACK_SCAN_LIMIT = 50


# --- bulletins ---

def get_bulletins(ctx: RepoContext, did: str, limit: int = 20) -> list[dict]:
    return [r.get("value") or {} for r in ctx.public.list_entries(did, lexicons.BULLETIN, limit)]


def post_bulletin(ctx: RepoContext, subject: str, body: str) -> dict:
    did = ctx.require_did()
    record = {
        "$type": lexicons.BULLETIN,
        "subject": subject,
        "body": body,
        "createdAt": lexicons.now_iso(),
    }
    create_record(ctx.client, did, lexicons.BULLETIN, record)
    return record


# --- comments ---

def _fetch_backlinked_comments(ctx: RepoContext, target_did: str, backlink_api: str) -> list[dict]:
    response = ctx.public.http.get(
        f"{backlink_api.rstrip('/')}/links",
        params={
            "target": target_did,
            "collection": lexicons.COMMENT,
            "path": ".targetDid",
            "limit": str(BACKLINK_LIMIT),
        },
        headers={"Accept": "application/json", "User-Agent": config.USER_AGENT},
    )
    if response.status_code != 200:
        logger.debug("Backlink lookup for %s returned %s", target_did, response.status_code)
        return []

    links = response.json().get("linking_records")
    if not isinstance(links, list):
        return []

    comments = []
    for link in links:
        if not isinstance(link, dict):
            continue
        author_did, collection, rkey = link.get("did"), link.get("collection"), link.get("rkey")
        if not author_did or not collection or not rkey:
            continue

        comment = _as_comment(ctx.public.get_value(author_did, collection, rkey))
        if comment is None:
            continue
        if not comment.get("author"):
            comment["author"] = author_did
        comments.append(comment)
    return comments


def _as_comment(value) -> Optional[dict]:
    """Copy a comment record, or None when it is not a dict with string content and createdAt."""
    if not isinstance(value, dict):
        return None
    if not isinstance(value.get("content"), str) or not isinstance(value.get("createdAt"), str):
        return None
    return dict(value)


def _scan_repo_comments(ctx: RepoContext, repo_did: str, target_did: str) -> list[dict]:
    comments = []
    for raw in ctx.public.list_entries(repo_did, lexicons.COMMENT, FALLBACK_SCAN_LIMIT):
        comment = _as_comment(raw.get("value") if isinstance(raw, dict) else None)
        if comment is None or comment.get("targetDid") != target_did:
            continue
        if not comment.get("author"):
            comment["author"] = repo_did
        comments.append(comment)
    return comments


def dedupe_and_sort_comments(comments: list[dict]) -> list[dict]:
    """Drop exact (author, createdAt, content) repeats, newest first."""
    seen = set()
    unique = []
    for comment in comments:
        key = tuple(str(comment.get(name)) for name in ("author", "createdAt", "content"))
        if key in seen:
            continue
        seen.add(key)
        unique.append(comment)
    return sorted(unique, key=lambda c: lexicons.parse_iso(c.get("createdAt")), reverse=True)


def get_profile_comments(
    ctx: RepoContext,
    target_did: str,
    backlink_api: Optional[str] = None,
) -> list[dict]:
    backlink_api = backlink_api or config.CONSTELLATION_API
    all_comments = []

    try:
        try:
            all_comments.extend(_fetch_backlinked_comments(ctx, target_did, backlink_api))
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.warning("Backlink lookup for %s failed: %s", target_did, e)

        all_comments.extend(_scan_repo_comments(ctx, target_did, target_did))

        viewer_did = ctx.did
        if viewer_did and viewer_did != target_did:
            all_comments.extend(_scan_repo_comments(ctx, viewer_did, target_did))

        return dedupe_and_sort_comments(all_comments)
    except Exception as e:
        logger.error("Failed to fetch comments for %s: %s", target_did, e, exc_info=True)
        return []


def post_comment(ctx: RepoContext, target_did: str, content: str) -> dict:
    """Write a comment into the commenter's own repo."""
    did = ctx.require_did()
    record = {
        "$type": lexicons.COMMENT,
        "targetDid": target_did,
        "author": did,
        "content": content,
        "createdAt": lexicons.now_iso(),
    }
    create_record(ctx.client, did, lexicons.COMMENT, record)
    return record
