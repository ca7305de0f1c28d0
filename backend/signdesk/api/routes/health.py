from flask import Blueprint, jsonify

from signdesk import __version__

bp = Blueprint("health", __name__)


@bp.route("/", methods=["GET"])
def root():
    return jsonify({"message": "SignDesk API", "version": __version__})


@bp.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "healthy"})
