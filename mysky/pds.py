"""Unauthenticated reads against a user's own PDS.

Records are fetched straight from the owner's PDS (found through the PLC
directory) rather than through the AppView, so custom collections work no
matter where the account is hosted.
"""
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from mysky import config
from mysky.logger import logger

PDS_SERVICE_TYPE = "AtprotoPersonalDataServer"

FOUND = "found"
ABSENT = "absent"
FAILED = "failed"


@dataclass
class ReadResult:
    """Outcome of a public read: found, confirmed absent, or could not verify."""
    status: str
    value: Any = None
    reason: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.status == FOUND

    @property
    def failed(self) -> bool:
        return self.status == FAILED

    @classmethod
    def ok(cls, value):
        return cls(FOUND, value)

    @classmethod
    def absent(cls, reason=None, value=None):
        return cls(ABSENT, value, reason)

    @classmethod
    def failure(cls, reason, value=None):
        return cls(FAILED, value, reason)


class PdsResolver:
    """Maps a DID to its PDS endpoint, caching successful lookups."""

    def __init__(self, http: httpx.Client, directory: str = config.PLC_DIRECTORY):
        self.http = http
        self.directory = directory.rstrip("/")
        self._cache: dict[str, str] = {}

    def resolve(self, did: str) -> Optional[str]:
        if did in self._cache:
            return self._cache[did]

        try:
            response = self.http.get(f"{self.directory}/{did}", headers={"Accept": "application/json"})
            if response.status_code != 200:
                logger.debug("PLC lookup for %s returned %s", did, response.status_code)
                return None
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Could not resolve PDS for %s: %s", did, e)
            return None

        services = data.get("service") if isinstance(data, dict) else None
        for service in services or []:
            if isinstance(service, dict) and service.get("type") == PDS_SERVICE_TYPE:
                endpoint = service.get("serviceEndpoint")
                if endpoint:
                    endpoint = endpoint.rstrip("/")
                    self._cache[did] = endpoint
                    return endpoint
        return None


@dataclass
class PublicRepo:
    resolver: PdsResolver
    http: httpx.Client = field(repr=False)

    def _xrpc(self, pds: str, method: str, params: dict) -> httpx.Response:
        return self.http.get(
            f"{pds}/xrpc/{method}",
            params=params,
            headers={"Accept": "application/json"},
        )

    def get_record(self, repo: str, collection: str, rkey: str) -> ReadResult:
        pds = self.resolver.resolve(repo)
        if not pds:
            return ReadResult.failure(f"no PDS for {repo}")

        try:
            response = self._xrpc(pds, "com.atproto.repo.getRecord", {
                "repo": repo,
                "collection": collection,
                "rkey": rkey,
            })
            if response.status_code in (400, 404):
                return ReadResult.absent(f"{collection}/{rkey} not found in {repo}")
            if response.status_code != 200:
                return ReadResult.failure(f"getRecord returned {response.status_code}")
            return ReadResult.ok(response.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("getRecord %s/%s/%s failed: %s", repo, collection, rkey, e)
            return ReadResult.failure(str(e))

    def list_records(self, repo: str, collection: str, limit: int = 50) -> ReadResult:
        pds = self.resolver.resolve(repo)
        if not pds:
            return ReadResult.failure(f"no PDS for {repo}", value=[])

        try:
            response = self._xrpc(pds, "com.atproto.repo.listRecords", {
                "repo": repo,
                "collection": collection,
                "limit": str(limit),
            })
            if response.status_code != 200:
                return ReadResult.failure(f"listRecords returned {response.status_code}", value=[])
            records = response.json().get("records") or []
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.debug("listRecords %s/%s failed: %s", repo, collection, e)
            return ReadResult.failure(str(e), value=[])

        if not records:
            return ReadResult.absent(value=[])
        return ReadResult.ok(records)

    def get_blob(self, did: str, cid: str) -> ReadResult:
        pds = self.resolver.resolve(did)
        if not pds:
            return ReadResult.failure(f"no PDS for {did}")

        try:
            response = self.http.get(f"{pds}/xrpc/com.atproto.sync.getBlob", params={"did": did, "cid": cid})
        except httpx.HTTPError as e:
            logger.debug("getBlob %s/%s failed: %s", did, cid, e)
            return ReadResult.failure(str(e))
        if response.status_code in (400, 404):
            return ReadResult.absent(f"blob {cid} not found for {did}")
        if response.status_code != 200:
            return ReadResult.failure(f"getBlob returned {response.status_code}")
        return ReadResult.ok(response.content)

    def get_value(self, repo: str, collection: str, rkey: str) -> Optional[dict]:
        """Return the record body, or None when absent or unreachable."""
        result = self.get_record(repo, collection, rkey)
        if result.found and isinstance(result.value, dict):
            return result.value.get("value")
        return None

    def list_entries(self, repo: str, collection: str, limit: int = 50) -> list[dict]:
        return list(self.list_records(repo, collection, limit).value or [])


def build_public_repo(timeout: float = config.HTTP_TIMEOUT) -> PublicRepo:
    http = httpx.Client(timeout=timeout, headers={"User-Agent": config.USER_AGENT})
    return PublicRepo(resolver=PdsResolver(http), http=http)
