import logging

from flask import (
    Blueprint, Flask, current_app, jsonify, render_template, request,
    send_from_directory
)
from werkzeug.exceptions import RequestEntityTooLarge

from asset_store import AssetStore
from config import Config
from errors import BlogError, PersistenceError, ValidationError
from models import db
from post_store import JsonFilePostRepository, SqlPostRepository

bp = Blueprint("blog", __name__)

# Optional header carrying the collection size the client last saw
VERSION_HEADER = "X-Collection-Version"


def get_posts():
    return current_app.extensions["post_repository"]


def get_assets():
    return current_app.extensions["asset_store"]


def _expected_version():
    raw = request.headers.get(VERSION_HEADER)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"Invalid {VERSION_HEADER} header") from None


# ===== Routes =====
@bp.route("/")
def index():
    return render_template("editor.html")


@bp.route("/blogs", methods=["POST"])
def create_blog():
    # Anything that is not a JSON object fails validation as an empty post
    candidate = request.get_json(silent=True)
    if not isinstance(candidate, dict):
        candidate = {}
    blog = get_posts().append(candidate, expected_version=_expected_version())
    return jsonify({"success": True, "blog": blog})


@bp.route("/blogs", methods=["GET"])
def list_blogs():
    return jsonify({"blogs": get_posts().list()})


@bp.route("/images")
def list_images():
    images = get_assets().list_images()
    return jsonify({"images": [img.to_dict() for img in images]})


@bp.route("/upload", methods=["POST"])
def upload():
    f = request.files.get("image")
    data = f.read() if f else b""
    asset = get_assets().upload(data, f.filename if f else "")
    return jsonify({"success": True, "url": asset.url, "filename": asset.filename})


# Serve files saved under UPLOAD_FOLDER
@bp.route("/uploads/<path:filename>")
def uploaded_file(filename):
    return send_from_directory(get_assets().upload_dir, filename)


@bp.app_errorhandler(BlogError)
def handle_blog_error(e):
    if e.status_code >= 500:
        current_app.logger.error("%s: %s", e.message, e.details)
    return jsonify(e.to_dict()), e.status_code


@bp.app_errorhandler(RequestEntityTooLarge)
def handle_too_large(e):
    limit = current_app.config["MAX_CONTENT_LENGTH"] // (1024 * 1024)
    return jsonify({"error": f"File too large (max {limit} MB)"}), 413


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    if app.config.get("SQLALCHEMY_DATABASE_URI"):
        db.init_app(app)
        posts = SqlPostRepository(db)
    else:
        posts = JsonFilePostRepository(app.config["BLOGS_FILE"])

    assets = AssetStore(
        app.config["UPLOAD_FOLDER"],
        url_prefix=app.config["UPLOAD_URL_PREFIX"],
        extensions=app.config["ALLOWED_IMAGE_EXTENSIONS"],
    )

    app.extensions["post_repository"] = posts
    app.extensions["asset_store"] = assets
    app.register_blueprint(bp)

    # Storage is created again on first write if this fails
    try:
        with app.app_context():
            posts.ensure_storage()
        assets.ensure_storage()
    except (PersistenceError, OSError) as e:
        app.logger.warning("Storage init failed: %s", e)

    return app


# Local dev entrypoint (production: gunicorn "app:create_app()")
if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_app().run(debug=True, host="127.0.0.1", port=5000)
