"""Blog support on top of the standard.site publication/document lexicons."""
import re
from typing import Optional

from atproto_core.exceptions import AtProtocolError

from mysky import config, lexicons
from mysky.context import RepoContext
from mysky.exceptions import RecordNotFoundError
from mysky.lexicons import SELF_RKEY, rgb
from mysky.logger import logger
from mysky.records.base import as_dict, check_choice, create_record, delete_record, merge_updates, put_or_create, put_record, with_meta

_HTML_TAG_RE = re.compile(r"<[^>]+>")

DEFAULT_THEME = {
    "background": rgb(255, 255, 255),
    "foreground": rgb(0, 51, 102),
    "accent": rgb(255, 102, 0),
    "accentForeground": rgb(255, 255, 255),
}


# --- publication ---

def get_publication(ctx: RepoContext, did: str) -> Optional[dict]:
    if ctx.client is None:
        return ctx.public.get_value(did, lexicons.PUBLICATION, SELF_RKEY)
    try:
        response = ctx.client.com.atproto.repo.get_record({
            "repo": did,
            "collection": lexicons.PUBLICATION,
            "rkey": SELF_RKEY,
        })
    except AtProtocolError:
        return None
    return as_dict(response.value)


def save_publication(ctx: RepoContext, publication: dict) -> dict:
    did = ctx.require_did()
    record = {**publication, "$type": lexicons.PUBLICATION}
    put_or_create(ctx.client, did, lexicons.PUBLICATION, SELF_RKEY, record)
    return record


def create_default_publication(ctx: RepoContext, handle: str, display_name: Optional[str] = None) -> dict:
    ctx.require_did()
    name = display_name or handle
    publication = {
        "$type": lexicons.PUBLICATION,
        "url": f"{config.MYSKY_URL}/profile/{handle}/blog",
        "name": f"{name}'s Blog",
        "description": f"Blog posts from {name} on MySky",
        "basicTheme": dict(DEFAULT_THEME),
        "preferences": {"showInDiscover": True},
    }
    return save_publication(ctx, publication)


def _ensure_publication(ctx: RepoContext, did: str) -> dict:
    publication = get_publication(ctx, did)
    if publication:
        return publication
    profile = ctx.client.get_profile(did)
    logger.info("No publication for %s, creating default", did)
    return create_default_publication(ctx, profile.handle, getattr(profile, "display_name", None))


# --- documents ---

def _content_union(content: str, content_type: str) -> tuple[dict, str]:
    if content_type == "html":
        return {"$type": lexicons.CONTENT_HTML, "value": content}, _HTML_TAG_RE.sub("", content)
    return {"$type": lexicons.CONTENT_MARKDOWN, "value": content}, lexicons.strip_markdown(content)


def get_document_content(doc: dict) -> str:
    """Best available text for a document: content union, then textContent, then legacy string."""
    content = doc.get("content")
    if isinstance(content, dict) and "value" in content:
        return content["value"]
    if doc.get("textContent"):
        return doc["textContent"]
    if isinstance(content, str):
        return content
    return ""


def get_documents(ctx: RepoContext, did: str, limit: int = 20) -> list[dict]:
    return [with_meta(r) for r in ctx.public.list_entries(did, lexicons.DOCUMENT, limit)]


def get_document(ctx: RepoContext, did: str, rkey: str) -> Optional[dict]:
    result = ctx.public.get_record(did, lexicons.DOCUMENT, rkey)
    if not result.found:
        return None
    return with_meta(result.value, rkey)


def create_document(
    ctx: RepoContext,
    title: str,
    content: str,
    description: Optional[str] = None,
    tags: Optional[list[str]] = None,
    visibility: str = "public",
    cover_image: Optional[dict] = None,
    content_type: str = "markdown",
) -> dict:
    visibility = visibility or "public"
    check_choice("visibility", visibility, lexicons.DOCUMENT_VISIBILITIES)
    did = ctx.require_did()
    _ensure_publication(ctx, did)

    rkey = lexicons.generate_document_rkey(title)
    body, text_content = _content_union(content, content_type)
    record = {
        "$type": lexicons.DOCUMENT,
        "site": lexicons.at_uri(did, lexicons.PUBLICATION, SELF_RKEY),
        "path": f"/{rkey}",
        "title": title,
        "content": body,
        "textContent": text_content,
        "publishedAt": lexicons.now_iso(),
        "visibility": visibility,
    }
    if description is not None:
        record["description"] = description
    if tags is not None:
        record["tags"] = tags
    if cover_image is not None:
        record["coverImage"] = cover_image

    response = create_record(ctx.client, did, lexicons.DOCUMENT, record, rkey=rkey)
    return {"uri": response.uri, "cid": response.cid, "rkey": rkey, "value": record}


def update_document(
    ctx: RepoContext,
    rkey: str,
    title: Optional[str] = None,
    content: Optional[str] = None,
    description: Optional[str] = None,
    tags: Optional[list[str]] = None,
    visibility: Optional[str] = None,
    cover_image: Optional[dict] = None,
    content_type: str = "markdown",
) -> dict:
    check_choice("visibility", visibility, lexicons.DOCUMENT_VISIBILITIES)
    did = ctx.require_did()
    existing = get_document(ctx, did, rkey)
    if not existing:
        raise RecordNotFoundError("Document not found")

    record = merge_updates(
        existing["value"],
        title=title,
        description=description,
        tags=tags,
        visibility=visibility,
        coverImage=cover_image,
    )
    record["updatedAt"] = lexicons.now_iso()
    if content is not None:
        record["content"], record["textContent"] = _content_union(content, content_type)

    put_record(ctx.client, did, lexicons.DOCUMENT, rkey, record, swap_record=existing["cid"])
    return record


def delete_document(ctx: RepoContext, rkey: str) -> None:
    did = ctx.require_did()
    delete_record(ctx.client, did, lexicons.DOCUMENT, rkey)


def get_published_documents(ctx: RepoContext, did: str, limit: int = 20) -> list[dict]:
    return [d for d in get_documents(ctx, did, limit) if d["value"].get("visibility") != "draft"]


def get_draft_documents(ctx: RepoContext, did: str, limit: int = 50) -> list[dict]:
    return [d for d in get_documents(ctx, did, limit) if d["value"].get("visibility") == "draft"]


# --- legacy blog entries ---

def get_blog_entries(ctx: RepoContext, did: str, limit: int = 10) -> list[dict]:
    """Documents flattened into the pre-standard.site blog entry shape."""
    entries = []
    for doc in get_documents(ctx, did, limit):
        value = doc["value"]
        entries.append({
            "title": value.get("title"),
            "content": get_document_content(value),
            "createdAt": value.get("publishedAt"),
            "visibility": value.get("visibility"),
            "uri": doc["uri"],
            "rkey": doc["rkey"],
            "description": value.get("description"),
            "tags": value.get("tags"),
            "updatedAt": value.get("updatedAt"),
        })
    return entries


def create_blog_entry(ctx: RepoContext, title: str, content: str, visibility: str = "public") -> dict:
    return create_document(ctx, title, content, description=content[:300], visibility=visibility)
