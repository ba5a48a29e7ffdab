import logging

from atproto_core.exceptions import AtProtocolError
from flask import Flask, jsonify, redirect, request

from mysky import config, lexicons, records
from mysky.blobs import get_custom_css, upload_custom_css
from mysky.context import AppContext
from mysky.exceptions import InvalidRecordError, MySkyError, NotAuthenticatedError, RecordNotFoundError
from mysky.identity import get_profiles, search_users
from mysky.logger import logger
from mysky.models import init_db


app = Flask(__name__)

init_db()
context = AppContext()

logging.basicConfig(level=logging.INFO)


def _token():
    return request.cookies.get(config.SESSION_COOKIE)


def _repo_ctx():
    return context.for_token(_token())


def _body():
    return request.get_json(silent=True) or {}


@app.errorhandler(NotAuthenticatedError)
def handle_not_authenticated(e):
    return jsonify({"error": str(e)}), 401


@app.errorhandler(RecordNotFoundError)
def handle_not_found(e):
    return jsonify({"error": str(e)}), 404


@app.errorhandler(InvalidRecordError)
def handle_invalid_record(e):
    return jsonify({"error": str(e)}), 400


@app.errorhandler(MySkyError)
@app.errorhandler(AtProtocolError)
def handle_write_error(e):
    logger.error("Error in %s %s: %s", request.method, request.path, e, exc_info=True)
    return jsonify({"error": str(e)}), 400


@app.route('/')
def index():
    return 'MySky: a place for friends, powered by the AT Protocol.'


# --- session ---

@app.route('/api/login', methods=['POST'])
def login():
    data = _body()
    handle, password = data.get("handle"), data.get("password")
    if not handle or not password:
        return jsonify({"error": "handle and password are required"}), 400

    session = context.auth.sign_in(handle, password)
    response = jsonify({"did": session.did, "handle": session.handle})
    response.set_cookie(config.SESSION_COOKIE, session.token, path='/', httponly=True, samesite='Lax')
    return response


@app.route('/api/logout', methods=['GET'])
def logout():
    context.auth.logout(_token())
    response = redirect('/')
    response.delete_cookie(config.SESSION_COOKIE, path='/')
    return response


# --- profile ---

@app.route('/api/profile/<did>', methods=['GET'])
def get_profile(did):
    ctx = context.anonymous()
    return jsonify({
        "profile": records.get_myspace_profile(ctx, did),
        "topFriends": records.get_top_friends(ctx, did),
    })


@app.route('/api/profile', methods=['PUT'])
def put_profile():
    record = records.save_myspace_profile(_repo_ctx(), _body())
    return jsonify(record)


@app.route('/api/css', methods=['PUT'])
def put_custom_css():
    ctx = _repo_ctx()
    css = request.get_data(as_text=True)
    cid = upload_custom_css(ctx, css)
    profile = records.get_myspace_profile(ctx, ctx.require_did()) or {}
    profile["customCssBlobRef"] = cid
    records.save_myspace_profile(ctx, profile)
    return jsonify({"customCssBlobRef": cid})


@app.route('/api/profile/<did>/css', methods=['GET'])
def get_profile_css(did):
    ctx = context.anonymous()
    profile = records.get_myspace_profile(ctx, did) or {}
    cid = profile.get("customCssBlobRef")
    css = get_custom_css(ctx, did, cid) if cid else None
    return css or '', 200, {'Content-Type': 'text/css; charset=utf-8'}


@app.route('/api/moods', methods=['GET'])
def list_moods():
    return jsonify(list(lexicons.MOODS))


@app.route('/api/top-friends', methods=['PUT'])
def put_top_friends():
    friends = _body().get("friends") or []
    return jsonify(records.save_top_friends(_repo_ctx(), friends))


@app.route('/api/top-friends/<did>/profiles', methods=['GET'])
def get_top_friend_profiles(did):
    ctx = _repo_ctx()
    return jsonify(get_profiles(ctx, records.get_top_friends(ctx, did)))


@app.route('/api/search', methods=['GET'])
def search():
    query = request.args.get('q', default='', type=str)
    limit = request.args.get('limit', default=20, type=int)
    if not query:
        return jsonify([])
    return jsonify(search_users(_repo_ctx(), query, limit))


# --- comments & bulletins ---

@app.route('/api/comments/<did>', methods=['GET'])
def list_comments(did):
    return jsonify(records.get_profile_comments(_repo_ctx(), did))


@app.route('/api/comments/<did>', methods=['POST'])
def create_comment(did):
    content = _body().get("content")
    if not content:
        return jsonify({"error": "content is required"}), 400
    return jsonify(records.post_comment(_repo_ctx(), did, content)), 201


@app.route('/api/bulletins/<did>', methods=['GET'])
def list_bulletins(did):
    limit = request.args.get('limit', default=20, type=int)
    return jsonify(records.get_bulletins(context.anonymous(), did, limit))


@app.route('/api/bulletins', methods=['POST'])
def create_bulletin():
    data = _body()
    if not data.get("subject") or not data.get("body"):
        return jsonify({"error": "subject and body are required"}), 400
    return jsonify(records.post_bulletin(_repo_ctx(), data["subject"], data["body"])), 201


# --- blog ---

@app.route('/api/blog/<did>', methods=['GET'])
def list_posts(did):
    limit = request.args.get('limit', default=20, type=int)
    return jsonify(records.get_published_documents(context.anonymous(), did, limit))


@app.route('/api/blog/<did>/drafts', methods=['GET'])
def list_drafts(did):
    ctx = _repo_ctx()
    if ctx.require_did() != did:
        return jsonify({"error": "drafts are only visible to their author"}), 403
    return jsonify(records.get_draft_documents(ctx, did))


@app.route('/api/blog', methods=['POST'])
def create_post():
    data = _body()
    if not data.get("title") or data.get("content") is None:
        return jsonify({"error": "title and content are required"}), 400
    doc = records.create_document(
        _repo_ctx(),
        data["title"],
        data["content"],
        description=data.get("description"),
        tags=data.get("tags"),
        visibility=data.get("visibility") or "public",
    )
    return jsonify(doc), 201


@app.route('/api/blog/<rkey>', methods=['PATCH'])
def update_post(rkey):
    data = _body()
    record = records.update_document(
        _repo_ctx(),
        rkey,
        title=data.get("title"),
        content=data.get("content"),
        description=data.get("description"),
        tags=data.get("tags"),
        visibility=data.get("visibility"),
    )
    return jsonify(record)


@app.route('/api/blog/<rkey>', methods=['DELETE'])
def delete_post(rkey):
    records.delete_document(_repo_ctx(), rkey)
    return '', 204


# --- photos ---

@app.route('/api/albums/<did>', methods=['GET'])
def list_albums(did):
    return jsonify(records.get_photo_albums(context.anonymous(), did))


@app.route('/api/albums', methods=['POST'])
def create_album():
    data = _body()
    if not data.get("name"):
        return jsonify({"error": "name is required"}), 400
    album = records.create_photo_album(
        _repo_ctx(),
        data["name"],
        description=data.get("description"),
        visibility=data.get("visibility") or "public",
    )
    return jsonify(album), 201


@app.route('/api/albums/<rkey>', methods=['PATCH'])
def update_album(rkey):
    data = _body()
    record = records.update_photo_album(
        _repo_ctx(),
        rkey,
        name=data.get("name"),
        description=data.get("description"),
        visibility=data.get("visibility"),
    )
    return jsonify(record)


@app.route('/api/albums/<rkey>', methods=['DELETE'])
def delete_album(rkey):
    records.delete_photo_album(_repo_ctx(), rkey)
    return '', 204


@app.route('/api/albums/<did>/<rkey>/photos', methods=['GET'])
def list_album_photos(did, rkey):
    return jsonify(records.get_album_photos(context.anonymous(), did, rkey))


@app.route('/api/albums/<rkey>/photos', methods=['POST'])
def create_photo(rkey):
    upload = request.files.get('file')
    if upload is None:
        return jsonify({"error": "file is required"}), 400
    photo = records.upload_photo(
        _repo_ctx(),
        rkey,
        upload.read(),
        upload.mimetype or 'application/octet-stream',
        caption=request.form.get('caption'),
    )
    return jsonify(photo), 201
