from typing import Any, Optional

from atproto_core.exceptions import AtProtocolError

from mysky.exceptions import InvalidRecordError
from mysky.lexicons import get_rkey_from_uri
from mysky.logger import logger


def as_dict(value: Any) -> dict:
    """Turn an SDK record value (DotDict, model or plain dict) into a plain dict."""
    if value is None:
        return {}
    if isinstance(value, dict):
        return dict(value)
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if hasattr(value, "model_dump"):
        return value.model_dump(by_alias=True, exclude_none=True)
    return dict(value)


def with_meta(raw: dict, rkey: Optional[str] = None) -> dict:
    """Shape a raw getRecord/listRecords entry as {uri, cid, rkey, value}."""
    uri = raw.get("uri") or ""
    return {
        "uri": uri,
        "cid": raw.get("cid"),
        "rkey": rkey or get_rkey_from_uri(uri),
        "value": raw.get("value") or {},
    }


def put_record(client, did: str, collection: str, rkey: str, record: dict, swap_record: Optional[str] = None):
    data = {"repo": did, "collection": collection, "rkey": rkey, "record": record}
    if swap_record:
        data["swap_record"] = swap_record
    return client.com.atproto.repo.put_record(data)


def create_record(client, did: str, collection: str, record: dict, rkey: Optional[str] = None):
    data = {"repo": did, "collection": collection, "record": record}
    if rkey:
        data["rkey"] = rkey
    return client.com.atproto.repo.create_record(data)


def delete_record(client, did: str, collection: str, rkey: str):
    return client.com.atproto.repo.delete_record({"repo": did, "collection": collection, "rkey": rkey})


def put_or_create(client, did: str, collection: str, rkey: str, record: dict):
    """Overwrite the record at rkey, creating it when the PDS rejects the put."""
    try:
        return put_record(client, did, collection, rkey, record)
    except AtProtocolError as e:
        logger.debug("putRecord %s/%s rejected (%s), creating instead", collection, rkey, e)
        return create_record(client, did, collection, record, rkey=rkey)


def merge_updates(existing: dict, **updates) -> dict:
    """Copy existing and overlay only the updates that were actually given."""
    merged = dict(existing)
    for key, value in updates.items():
        if value is not None:
            merged[key] = value
    return merged


def check_choice(field: str, value: Optional[str], choices: tuple) -> None:
    """Reject a set value that is not one of ``choices``; None means the field is left alone."""
    if value is not None and value not in choices:
        raise InvalidRecordError(f"Invalid {field} {value!r}; expected one of {', '.join(choices)}")
