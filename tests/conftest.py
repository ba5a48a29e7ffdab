import itertools
import os
from collections import defaultdict
from types import SimpleNamespace
from urllib.parse import unquote

os.environ["DATABASE_PATH"] = ":memory:"

import httpx
import pytest
from atproto_core.exceptions import AtProtocolError

from mysky.context import RepoContext
from mysky.pds import PdsResolver, PublicRepo

PDS_URL = "https://pds.test"
PLC_URL = "https://plc.test"
BACKLINKS_URL = "https://constellation.test"

ALICE = "did:plc:alice"
BOB = "did:plc:bob"
CAROL = "did:plc:carol"


class FakeNetwork:
    """One in-memory PDS shared by every DID, plus a PLC directory and a backlink index."""

    def __init__(self):
        self.repos = defaultdict(lambda: defaultdict(dict))
        self.backlinks = []
        self.blobs = {}
        self.unresolvable = set()
        self.broken_backlinks = False
        self.accounts = {}
        self.revoked = set()
        self.requests = []
        self._cids = itertools.count(1)

    def next_cid(self):
        return f"bafyrei{next(self._cids):06d}"

    def store(self, did, collection, rkey, value):
        cid = self.next_cid()
        self.repos[did][collection][rkey] = {"cid": cid, "value": value}
        return cid

    def records(self, did, collection):
        return {rkey: entry["value"] for rkey, entry in self.repos[did][collection].items()}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        params = request.url.params

        if path.startswith("/did:"):
            did = unquote(path[1:])
            if did in self.unresolvable:
                return httpx.Response(404, json={"message": "DID not registered"})
            return httpx.Response(200, json={
                "id": did,
                "service": [
                    {"id": "#atproto_pds", "type": "AtprotoPersonalDataServer", "serviceEndpoint": PDS_URL},
                ],
            })

        if path == "/links":
            if self.broken_backlinks:
                return httpx.Response(200, text="not json")
            matches = [link for link in self.backlinks if link["target"] == params["target"]]
            return httpx.Response(200, json={
                "total": len(matches),
                "linking_records": [
                    {"did": link["did"], "collection": link["collection"], "rkey": link["rkey"]}
                    for link in matches[:int(params["limit"])]
                ],
            })

        if path == "/xrpc/com.atproto.repo.getRecord":
            repo, collection, rkey = params["repo"], params["collection"], params["rkey"]
            entry = self.repos[repo][collection].get(rkey)
            if entry is None:
                return httpx.Response(400, json={"error": "RecordNotFound"})
            return httpx.Response(200, json={
                "uri": f"at://{repo}/{collection}/{rkey}",
                "cid": entry["cid"],
                "value": entry["value"],
            })

        if path == "/xrpc/com.atproto.repo.listRecords":
            repo, collection = params["repo"], params["collection"]
            entries = list(self.repos[repo][collection].items())[:int(params["limit"])]
            return httpx.Response(200, json={"records": [
                {"uri": f"at://{repo}/{collection}/{rkey}", "cid": entry["cid"], "value": entry["value"]}
                for rkey, entry in entries
            ]})

        if path == "/xrpc/com.atproto.sync.getBlob":
            data = self.blobs.get(params["cid"])
            if data is None:
                return httpx.Response(400, json={"error": "BlobNotFound"})
            return httpx.Response(200, content=data)

        return httpx.Response(404)


class FakeProfile:
    def __init__(self, did, handle, display_name=None):
        self.did = did
        self.handle = handle
        self.display_name = display_name

    def model_dump(self, by_alias=False, exclude_none=False):
        data = {"did": self.did, "handle": self.handle, "displayName": self.display_name}
        if exclude_none:
            data = {k: v for k, v in data.items() if v is not None}
        return data


class FakeClient:
    """Just enough of atproto.Client for the record helpers, writing into a FakeNetwork."""

    def __init__(self, network, did=ALICE, handle="alice.test", display_name=None):
        self.network = network
        self.me = SimpleNamespace(did=did, handle=handle) if did else None
        self.profiles = {did: FakeProfile(did, handle, display_name)} if did else {}
        self.calls = []
        self.reject_put_when_missing = True
        self.com = SimpleNamespace(atproto=SimpleNamespace(
            repo=SimpleNamespace(
                put_record=self._put_record,
                create_record=self._create_record,
                delete_record=self._delete_record,
                get_record=self._get_record,
            ),
            identity=SimpleNamespace(resolve_handle=self._resolve_handle),
        ))
        self.app = SimpleNamespace(bsky=SimpleNamespace(actor=SimpleNamespace(search_actors=self._search_actors)))
        self.com.atproto.server = SimpleNamespace(delete_session=self._delete_session)
        self.session_callbacks = []

    def _response(self, data, rkey, cid):
        return SimpleNamespace(uri=f"at://{data['repo']}/{data['collection']}/{rkey}", cid=cid)

    def _put_record(self, data):
        self.calls.append(("put", data))
        existing = self.network.repos[data["repo"]][data["collection"]].get(data["rkey"])
        if existing is None and self.reject_put_when_missing:
            raise AtProtocolError("Could not locate record")
        if data.get("swap_record") and (existing is None or existing["cid"] != data["swap_record"]):
            raise AtProtocolError("Record was at a different CID")
        cid = self.network.store(data["repo"], data["collection"], data["rkey"], data["record"])
        return self._response(data, data["rkey"], cid)

    def _create_record(self, data):
        self.calls.append(("create", data))
        rkey = data.get("rkey") or f"tid{len(self.calls):08d}"
        if rkey in self.network.repos[data["repo"]][data["collection"]]:
            raise AtProtocolError("Record already exists")
        cid = self.network.store(data["repo"], data["collection"], rkey, data["record"])
        return self._response(data, rkey, cid)

    def _delete_record(self, data):
        self.calls.append(("delete", data))
        self.network.repos[data["repo"]][data["collection"]].pop(data["rkey"], None)

    def _get_record(self, params):
        entry = self.network.repos[params["repo"]][params["collection"]].get(params["rkey"])
        if entry is None:
            raise AtProtocolError("RecordNotFound")
        return SimpleNamespace(uri="", cid=entry["cid"], value=dict(entry["value"]))

    def _resolve_handle(self, params):
        for profile in self.profiles.values():
            if profile.handle == params["handle"]:
                return SimpleNamespace(did=profile.did)
        raise AtProtocolError("Unable to resolve handle")

    def _search_actors(self, params):
        actors = [p for p in self.profiles.values() if params["q"] in p.handle]
        return SimpleNamespace(actors=actors[:params["limit"]])

    def get_profile(self, actor):
        if actor not in self.profiles:
            raise AtProtocolError("Profile not found")
        return self.profiles[actor]

    def login(self, login=None, password=None, session_string=None):
        if session_string is not None:
            if session_string in self.network.revoked:
                raise AtProtocolError("Token has been revoked")
            did, _, handle = session_string.partition("|")
        else:
            account = self.network.accounts.get(login)
            if account is None or account[1] != password:
                raise AtProtocolError("Invalid identifier or password")
            did, handle = account[0], login
        self.me = SimpleNamespace(did=did, handle=handle)
        self.profiles.setdefault(did, FakeProfile(did, handle))
        return self.profiles[did]

    def export_session_string(self):
        return f"{self.me.did}|{self.me.handle}"

    def on_session_change(self, callback):
        self.session_callbacks.append(callback)

    def _delete_session(self):
        self.network.revoked.add(self.export_session_string())

    def upload_blob(self, data):
        cid = f"bafkrei{len(self.network.blobs):06d}"
        self.network.blobs[cid] = data
        return SimpleNamespace(blob=SimpleNamespace(ref=SimpleNamespace(link=cid), mime_type="image/png", size=len(data)))


@pytest.fixture
def network():
    return FakeNetwork()


@pytest.fixture
def public_repo(network):
    http = httpx.Client(transport=httpx.MockTransport(network.handler))
    return PublicRepo(resolver=PdsResolver(http, directory=PLC_URL), http=http)


@pytest.fixture
def client(network):
    return FakeClient(network)


@pytest.fixture
def ctx(public_repo, client):
    return RepoContext(public=public_repo, client=client)


@pytest.fixture
def anon_ctx(public_repo):
    return RepoContext(public=public_repo)


@pytest.fixture
def session_db():
    from mysky.models import Session, db

    db.connect(reuse_if_open=True)
    db.create_tables([Session])
    yield db
    db.drop_tables([Session])


@pytest.fixture
def auth(network, session_db):
    from mysky.auth import AuthManager

    network.accounts["alice.test"] = (ALICE, "hunter2")
    return AuthManager(client_factory=lambda: FakeClient(network, did=None))
