from typing import Optional

from mysky import lexicons
from mysky.blobs import upload_image
from mysky.context import RepoContext
from mysky.exceptions import RecordNotFoundError
from mysky.logger import logger
from mysky.records.base import check_choice, create_record, delete_record, merge_updates, put_record, with_meta

LIST_LIMIT = 100


# --- albums ---

def get_photo_albums(ctx: RepoContext, did: str) -> list[dict]:
    return [with_meta(r) for r in ctx.public.list_entries(did, lexicons.PHOTO_ALBUM, LIST_LIMIT)]


def get_photo_album(ctx: RepoContext, did: str, rkey: str) -> Optional[dict]:
    result = ctx.public.get_record(did, lexicons.PHOTO_ALBUM, rkey)
    if not result.found:
        return None
    return with_meta(result.value, rkey)


def create_photo_album(
    ctx: RepoContext,
    name: str,
    description: Optional[str] = None,
    visibility: str = "public",
) -> dict:
    visibility = visibility or "public"
    check_choice("visibility", visibility, lexicons.ALBUM_VISIBILITIES)
    did = ctx.require_did()
    rkey = lexicons.generate_rkey()
    record = {
        "$type": lexicons.PHOTO_ALBUM,
        "name": name,
        "visibility": visibility,
        "createdAt": lexicons.now_iso(),
    }
    if description is not None:
        record["description"] = description

    response = create_record(ctx.client, did, lexicons.PHOTO_ALBUM, record, rkey=rkey)
    return {"uri": response.uri, "cid": response.cid, "rkey": rkey, "value": record}


def update_photo_album(
    ctx: RepoContext,
    rkey: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
    visibility: Optional[str] = None,
    cover_photo: Optional[dict] = None,
) -> dict:
    check_choice("visibility", visibility, lexicons.ALBUM_VISIBILITIES)
    did = ctx.require_did()
    existing = get_photo_album(ctx, did, rkey)
    if not existing:
        raise RecordNotFoundError("Album not found")

    record = merge_updates(
        existing["value"],
        name=name,
        description=description,
        visibility=visibility,
        coverPhoto=cover_photo,
    )
    record["updatedAt"] = lexicons.now_iso()
    put_record(ctx.client, did, lexicons.PHOTO_ALBUM, rkey, record, swap_record=existing["cid"])
    return record


def delete_photo_album(ctx: RepoContext, rkey: str) -> None:
    """Delete an album after removing every photo filed under it."""
    did = ctx.require_did()
    photos = get_album_photos(ctx, did, rkey)
    for photo in photos:
        delete_photo(ctx, photo["rkey"])
    logger.info("Deleted %d photos from album %s", len(photos), rkey)
    delete_record(ctx.client, did, lexicons.PHOTO_ALBUM, rkey)


# --- photos ---

def get_all_photos(ctx: RepoContext, did: str) -> list[dict]:
    return [with_meta(r) for r in ctx.public.list_entries(did, lexicons.PHOTO, LIST_LIMIT)]


def get_album_photos(ctx: RepoContext, did: str, album_rkey: str) -> list[dict]:
    return [p for p in get_all_photos(ctx, did) if p["value"].get("albumRkey") == album_rkey]


def get_photo(ctx: RepoContext, did: str, rkey: str) -> Optional[dict]:
    result = ctx.public.get_record(did, lexicons.PHOTO, rkey)
    if not result.found:
        return None
    return with_meta(result.value, rkey)


def upload_photo(
    ctx: RepoContext,
    album_rkey: str,
    data: bytes,
    mime_type: str,
    caption: Optional[str] = None,
    tags: Optional[list[str]] = None,
) -> dict:
    did = ctx.require_did()
    image = upload_image(ctx, data, mime_type)

    rkey = lexicons.generate_rkey()
    record = {
        "$type": lexicons.PHOTO,
        "albumRkey": album_rkey,
        "image": image.to_record(),
        "uploadedAt": lexicons.now_iso(),
    }
    if caption is not None:
        record["caption"] = caption
    if tags is not None:
        record["tags"] = tags

    response = create_record(ctx.client, did, lexicons.PHOTO, record, rkey=rkey)
    return {"uri": response.uri, "cid": response.cid, "rkey": rkey, "value": record}


def update_photo(ctx: RepoContext, rkey: str, caption: Optional[str] = None, tags: Optional[list[str]] = None) -> dict:
    did = ctx.require_did()
    existing = get_photo(ctx, did, rkey)
    if not existing:
        raise RecordNotFoundError("Photo not found")

    record = merge_updates(existing["value"], caption=caption, tags=tags)
    put_record(ctx.client, did, lexicons.PHOTO, rkey, record, swap_record=existing["cid"])
    return record


def delete_photo(ctx: RepoContext, rkey: str) -> None:
    did = ctx.require_did()
    delete_record(ctx.client, did, lexicons.PHOTO, rkey)
