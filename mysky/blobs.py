"""Blob uploads and CDN URLs.

Upstream blob references come in several shapes (``ref.$link``, a bare string
ref, a ``cid`` field, or SDK objects); ``normalize_blob_ref`` turns all of them
into one ``BlobRef`` as soon as they are received.
"""
from dataclasses import dataclass
from typing import Any, Optional

from mysky import config
from mysky.context import RepoContext
from mysky.exceptions import MySkyError
from mysky.logger import logger

DEFAULT_IMAGE_PATH = "/default-avatar.svg"


@dataclass(frozen=True)
class BlobRef:
    cid: str
    mime_type: str
    size: int

    def to_record(self) -> dict:
        return {
            "$type": "blob",
            "ref": {"$link": self.cid},
            "mimeType": self.mime_type,
            "size": self.size,
        }


def _get(raw: Any, *names):
    for name in names:
        if isinstance(raw, dict):
            value = raw.get(name)
        else:
            value = getattr(raw, name, None)
        if value is not None:
            return value
    return None


def _extract_cid(raw: Any) -> Optional[str]:
    ref = _get(raw, "ref")
    if isinstance(ref, str) and ref:
        return ref
    if ref is not None and not isinstance(ref, str):
        link = _get(ref, "$link", "link")
        if link:
            return str(link)
        # CID objects stringify to their base32 form
        if not isinstance(ref, (dict, bytes)):
            text = str(ref)
            if text:
                return text
    cid = _get(raw, "cid")
    return str(cid) if cid else None


def normalize_blob_ref(raw: Any, mime_type: Optional[str] = None, size: Optional[int] = None) -> Optional[BlobRef]:
    if raw is None:
        return None
    if isinstance(raw, BlobRef):
        return raw
    cid = _extract_cid(raw)
    if not cid:
        return None
    return BlobRef(
        cid=cid,
        mime_type=_get(raw, "mimeType", "mime_type") or mime_type or "application/octet-stream",
        size=_get(raw, "size") or size or 0,
    )


def upload_blob(ctx: RepoContext, data: bytes, mime_type: str) -> BlobRef:
    client = ctx.require_client()
    response = client.upload_blob(data)
    blob = normalize_blob_ref(response.blob, mime_type=mime_type, size=len(data))
    if blob is None:
        raise MySkyError("uploadBlob response did not include a blob reference")
    logger.debug("Uploaded blob %s (%s, %s bytes)", blob.cid, blob.mime_type, blob.size)
    return blob


def upload_image(ctx: RepoContext, data: bytes, mime_type: str) -> BlobRef:
    return upload_blob(ctx, data, mime_type)


def upload_custom_css(ctx: RepoContext, css: str) -> str:
    return upload_blob(ctx, css.encode("utf-8"), "text/css").cid


def get_custom_css(ctx: RepoContext, did: str, cid: str) -> Optional[str]:
    result = ctx.public.get_blob(did, cid)
    if not result.found:
        logger.debug("No css blob %s for %s: %s", cid, did, result.reason)
        return None
    return result.value.decode("utf-8", errors="replace")


def get_photo_url(did: str, blob_ref: Any) -> str:
    """CDN URL for an image blob; falls back to the default avatar."""
    blob = normalize_blob_ref(blob_ref)
    if blob is None:
        logger.warning("Could not extract CID from blob ref: %r", blob_ref)
        return DEFAULT_IMAGE_PATH
    return f"{config.BSKY_CDN}/img/feed_thumbnail/plain/{did}/{blob.cid}@jpeg"
