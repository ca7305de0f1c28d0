"""
Serves signed PDFs written by the local storage backend.
"""

from pathlib import Path

from flask import Blueprint, abort, send_from_directory

from signdesk.config import settings

bp = Blueprint("files", __name__, url_prefix="/files")


@bp.route("/<path:key>", methods=["GET"])
def get_file(key: str):
    if settings.storage_backend != "local":
        abort(404)
    root = Path(settings.storage_root).resolve()
    return send_from_directory(root, key, mimetype="application/pdf")
