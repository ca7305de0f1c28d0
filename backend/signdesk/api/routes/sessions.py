"""
Editing session API routes.

A session is the in-memory workspace for signing one document: the client
records the rendered overlay size per page, adds and drags stamps, then either
saves (embed + persist + mark the document signed) or downloads the stamped
PDF without persisting anything.
"""

import asyncio
import io
import json
import logging

from flask import Blueprint, jsonify, request, send_file

from signdesk.config import settings
from signdesk.database import get_db
from signdesk.schemas.annotation import (
    AnnotationCreate,
    AnnotationListResponse,
    AnnotationResponse,
    AnnotationUpdate,
    GeometryUpdate,
    PositionUpdate,
    SessionCreate,
)
from signdesk.schemas.document import DocumentResponse
from signdesk.schemas.signing import SaveResponse
from signdesk.services.coordinate_transformer import OverlayGeometry
from signdesk.services.document_service import DocumentService
from signdesk.services.editing_session_service import get_editing_session_service
from signdesk.services.signing_service import (
    DocumentUpdateIntent,
    get_signing_service,
    suggested_file_name,
)
from signdesk.utils.exceptions import NotFoundError

bp = Blueprint("sessions", __name__, url_prefix="/api/sessions")

logger = logging.getLogger(__name__)


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


def _get_session(session_id: str):
    return get_editing_session_service().get_session(session_id)


def _get_annotation(session, annotation_id: str):
    annotation = session.store.get(annotation_id)
    if annotation is None:
        raise NotFoundError("Annotation", annotation_id)
    return annotation


def _annotation_json(annotation) -> dict:
    return AnnotationResponse.from_annotation(annotation).model_dump(mode="json")


def _apply_document_intent(document_id: str, intent: DocumentUpdateIntent) -> None:
    with get_db() as db:
        DocumentService(db).apply_intent(document_id, intent)


@bp.route("", methods=["POST"])
def open_session():
    payload = SessionCreate.model_validate(_json_body())

    with get_db() as db:
        document = DocumentService(db).get_document(payload.document_id)
        document_id, user_id, original_url = document.id, document.user_id, document.original_url

    session = asyncio.run(
        get_editing_session_service().open_session(document_id, user_id, original_url)
    )
    return jsonify(session.to_dict()), 201


@bp.route("/<session_id>", methods=["GET"])
def get_session(session_id: str):
    return jsonify(_get_session(session_id).to_dict())


@bp.route("/<session_id>", methods=["DELETE"])
def discard_session(session_id: str):
    if not get_editing_session_service().discard_session(session_id):
        raise NotFoundError("Editing session", session_id)
    return jsonify({"message": "Session discarded"})


@bp.route("/<session_id>/geometry/<int:page>", methods=["PUT"])
def record_geometry(session_id: str, page: int):
    session = _get_session(session_id)
    payload = GeometryUpdate.model_validate(_json_body())
    geometry = session.record_geometry(page, payload.width, payload.height)
    return jsonify({"page": page, "width": geometry.width, "height": geometry.height})


@bp.route("/<session_id>/annotations", methods=["POST"])
def add_annotation(session_id: str):
    session = _get_session(session_id)
    payload = AnnotationCreate.model_validate(_json_body())

    annotation_id = session.store.add(
        text=payload.text,
        font_ref=payload.font_ref,
        font_size=payload.font_size,
        color=payload.color,
        page=payload.page,
    )
    if annotation_id is None:
        # Blank text is ignored, matching the editor's "nothing to add" behavior
        return jsonify({"annotation": None})

    session.store.select(annotation_id)
    return jsonify({"annotation": _annotation_json(session.store.get(annotation_id))}), 201


@bp.route("/<session_id>/annotations", methods=["GET"])
def list_annotations(session_id: str):
    session = _get_session(session_id)
    page = request.args.get("page", type=int)

    annotations = session.store.list_by_page(page) if page is not None else session.store.all()
    response = AnnotationListResponse(
        page=page,
        annotations=[AnnotationResponse.from_annotation(a) for a in annotations],
    )
    return jsonify(response.model_dump(mode="json"))


@bp.route("/<session_id>/annotations/<annotation_id>", methods=["PATCH"])
def update_annotation(session_id: str, annotation_id: str):
    session = _get_session(session_id)
    _get_annotation(session, annotation_id)
    payload = AnnotationUpdate.model_validate(_json_body())

    updated = session.store.update(annotation_id, **payload.model_dump(exclude_unset=True))
    return jsonify({"annotation": _annotation_json(updated)})


@bp.route("/<session_id>/annotations/<annotation_id>/position", methods=["PUT"])
def move_annotation(session_id: str, annotation_id: str):
    session = _get_session(session_id)
    annotation = _get_annotation(session, annotation_id)
    payload = PositionUpdate.model_validate(_json_body())

    default = OverlayGeometry(settings.default_overlay_width, settings.default_overlay_height)
    overlay = session.geometry_for(annotation.page, default)
    moved = session.store.move(annotation_id, payload.x, payload.y, overlay)
    return jsonify({"annotation": _annotation_json(moved)})


@bp.route("/<session_id>/annotations/<annotation_id>/select", methods=["POST"])
def select_annotation(session_id: str, annotation_id: str):
    session = _get_session(session_id)
    _get_annotation(session, annotation_id)
    session.store.select(annotation_id)
    return jsonify({"selected_id": session.store.selected_id})


@bp.route("/<session_id>/annotations/<annotation_id>", methods=["DELETE"])
def delete_annotation(session_id: str, annotation_id: str):
    session = _get_session(session_id)
    if not session.store.remove(annotation_id):
        raise NotFoundError("Annotation", annotation_id)
    return jsonify({"message": "Annotation removed", "selected_id": session.store.selected_id})


@bp.route("/<session_id>/save", methods=["POST"])
def save_session(session_id: str):
    session = _get_session(session_id)

    result = asyncio.run(get_signing_service().save(session, _apply_document_intent))
    get_editing_session_service().close_session(session_id)

    with get_db() as db:
        document = DocumentService(db).get_document(result.document_id)
        document_response = DocumentResponse.model_validate(document)

    response = SaveResponse(
        document=document_response,
        signed_url=result.intent.signed_url,
        file_name=result.file_name,
        page_count=result.page_count,
        warnings=[w.to_dict() for w in result.warnings],
    )
    return jsonify(response.model_dump(mode="json"))


@bp.route("/<session_id>/download", methods=["POST"])
def download_session(session_id: str):
    session = _get_session(session_id)

    result = asyncio.run(get_signing_service().render(session))

    response = send_file(
        io.BytesIO(result.document_bytes),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=suggested_file_name(session.document_id),
    )
    response.headers["X-Stamp-Warnings"] = json.dumps([w.to_dict() for w in result.warnings])
    return response
