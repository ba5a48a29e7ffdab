import pytest

from mysky import app as app_module
from mysky.auth import AuthManager
from mysky.context import AppContext
from mysky.lexicons import COMMENT, MOODS, TOM_DID, TOP_FRIENDS

from conftest import ALICE, BOB, FakeClient


@pytest.fixture
def web(monkeypatch, network, public_repo, session_db):
    network.accounts["alice.test"] = (ALICE, "hunter2")
    context = AppContext(
        public=public_repo,
        auth=AuthManager(client_factory=lambda: FakeClient(network, did=None)),
    )
    monkeypatch.setattr(app_module, "context", context)
    app_module.app.config["TESTING"] = True
    return app_module.app.test_client()


def _login(web):
    response = web.post("/api/login", json={"handle": "@alice.test", "password": "hunter2"})
    assert response.status_code == 200
    return response


def test_login_sets_session_cookie(web) -> None:
    response = _login(web)
    assert response.get_json() == {"did": ALICE, "handle": "alice.test"}
    assert "ms_session=" in response.headers["Set-Cookie"]


def test_login_requires_credentials(web) -> None:
    assert web.post("/api/login", json={"handle": "alice.test"}).status_code == 400


def test_bad_password_is_rejected(web) -> None:
    response = web.post("/api/login", json={"handle": "alice.test", "password": "nope"})
    assert response.status_code == 400
    assert "error" in response.get_json()


def test_logout_clears_cookie_and_redirects(web) -> None:
    _login(web)

    response = web.get("/api/logout")

    assert response.status_code == 302
    assert response.headers["Location"].endswith("/")
    cookie = response.headers["Set-Cookie"]
    assert cookie.startswith("ms_session=;")
    assert "Path=/" in cookie


def test_profile_defaults(web) -> None:
    response = web.get(f"/api/profile/{ALICE}")
    assert response.get_json() == {"profile": None, "topFriends": [TOM_DID]}


def test_writes_without_session_are_401(web) -> None:
    response = web.put("/api/top-friends", json={"friends": [BOB]})
    assert response.status_code == 401
    assert response.get_json() == {"error": "Not authenticated"}


def test_save_top_friends(web, network) -> None:
    _login(web)

    response = web.put("/api/top-friends", json={"friends": [f"did:plc:{i}" for i in range(10)]})

    assert response.status_code == 200
    assert len(network.records(ALICE, TOP_FRIENDS)["self"]["friends"]) == 8


def test_post_and_list_comments(web, network) -> None:
    _login(web)

    assert web.post(f"/api/comments/{BOB}", json={"content": "hi bob"}).status_code == 201
    assert web.post(f"/api/comments/{BOB}", json={}).status_code == 400

    [stored] = network.records(ALICE, COMMENT).values()
    assert stored["targetDid"] == BOB

    comments = web.get(f"/api/comments/{BOB}").get_json()
    assert [c["content"] for c in comments] == ["hi bob"]


def test_update_missing_post_is_404(web) -> None:
    _login(web)
    response = web.patch("/api/blog/missing", json={"title": "x"})
    assert response.status_code == 404
    assert response.get_json() == {"error": "Document not found"}


def test_blog_flow(web) -> None:
    _login(web)

    created = web.post("/api/blog", json={"title": "Hi", "content": "# Hello", "visibility": "draft"})
    assert created.status_code == 201
    rkey = created.get_json()["rkey"]

    assert web.get(f"/api/blog/{ALICE}").get_json() == []
    assert [d["rkey"] for d in web.get(f"/api/blog/{ALICE}/drafts").get_json()] == [rkey]

    web.patch(f"/api/blog/{rkey}", json={"visibility": "public"})
    assert [d["rkey"] for d in web.get(f"/api/blog/{ALICE}").get_json()] == [rkey]

    assert web.delete(f"/api/blog/{rkey}").status_code == 204
    assert web.get(f"/api/blog/{ALICE}").get_json() == []


def test_drafts_are_private(web) -> None:
    _login(web)
    assert web.get(f"/api/blog/{BOB}/drafts").status_code == 403


def test_album_and_photo_upload(web, network) -> None:
    from io import BytesIO

    _login(web)
    album = web.post("/api/albums", json={"name": "Pics"}).get_json()

    response = web.post(
        f"/api/albums/{album['rkey']}/photos",
        data={"file": (BytesIO(b"img"), "me.png", "image/png"), "caption": "me"},
        content_type="multipart/form-data",
    )
    assert response.status_code == 201
    assert response.get_json()["value"]["caption"] == "me"

    photos = web.get(f"/api/albums/{ALICE}/{album['rkey']}/photos").get_json()
    assert len(photos) == 1

    assert web.delete(f"/api/albums/{album['rkey']}").status_code == 204
    assert web.get(f"/api/albums/{ALICE}").get_json() == []


def test_custom_css(web) -> None:
    _login(web)
    response = web.put("/api/css", data="body { color: red; }", content_type="text/css")
    assert response.status_code == 200

    css = web.get(f"/api/profile/{ALICE}/css")
    assert css.get_data(as_text=True) == "body { color: red; }"
    assert css.headers["Content-Type"].startswith("text/css")


def test_css_upload_does_not_shadow_profile_paths(web, network) -> None:
    _login(web)

    assert web.put("/api/profile/css", data="a {}", content_type="text/css").status_code == 405
    assert network.blobs == {}
    assert web.put("/api/css", data="a {}", content_type="text/css").status_code == 200
    assert web.get(f"/api/profile/{ALICE}").get_json()["profile"]["customCssBlobRef"]


def test_unknown_visibility_is_400(web) -> None:
    _login(web)

    response = web.post("/api/blog", json={"title": "t", "content": "c", "visibility": "secret"})

    assert response.status_code == 400
    assert "visibility" in response.get_json()["error"]


def test_moods_list(web) -> None:
    moods = web.get("/api/moods").get_json()
    assert "nostalgic" in moods
    assert moods == list(MOODS)
