"""
Document record API routes.

Documents are uploaded elsewhere; these routes register the record that
points at the uploaded file and expose its signing status.
"""

import logging

from flask import Blueprint, jsonify, request

from signdesk.database import get_db
from signdesk.schemas.document import DocumentCreate, DocumentResponse
from signdesk.services.document_service import DocumentService

bp = Blueprint("documents", __name__, url_prefix="/api/documents")

logger = logging.getLogger(__name__)


@bp.route("", methods=["POST"])
def create_document():
    payload = DocumentCreate.model_validate(request.get_json(silent=True) or {})

    with get_db() as db:
        document = DocumentService(db).create_document(
            user_id=payload.user_id,
            name=payload.name,
            original_url=payload.original_url,
        )
        response = DocumentResponse.model_validate(document)

    return jsonify(response.model_dump(mode="json")), 201


@bp.route("/<document_id>", methods=["GET"])
def get_document(document_id: str):
    with get_db() as db:
        document = DocumentService(db).get_document(document_id)
        response = DocumentResponse.model_validate(document)

    return jsonify(response.model_dump(mode="json"))
