# onnoff_app/blueprints/files.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from flask import Blueprint, current_app, request, session, jsonify

from onnoff_app.decorators import login_required
from onnoff_app.errors import StorageError
from onnoff_app.extensions import db
from onnoff_app.models.user import User
from onnoff_app.models.file import File, AuditLog
from onnoff_app.services.object_store import get_object_store
from onnoff_app.services.storage import get_storage, format_size


bp = Blueprint("files", __name__, url_prefix="/api/files")


def current_user():
    data = session.get("user")
    if not data:
        return None
    if data.get("id") is not None:
        return db.session.get(User, data["id"])
    email = data.get("email")
    if not email:
        return None
    return User.query.filter_by(email=email).first()

def _remove_file(uf: File, user_id: int) -> int:
    """Apaga objeto + registro. Falha no object store não impede a remoção do registro."""
    store = get_object_store()
    key = uf.storage_key or store.key_from_url(uf.url)
    if key:
        try:
            store.delete(key)
        except StorageError as e:
            current_app.logger.warning("Falha ao apagar %s do object store: %s", key, e)

    size = int(uf.size_bytes or 0)
    db.session.add(AuditLog(user_id=user_id, action="delete", ref=f"file:{uf.id}", description=uf.original_name))
    db.session.delete(uf)
    return size

def _is_id_list(value) -> bool:
    # bool é subclasse de int; strings e floats não são ids
    return isinstance(value, list) and all(
        isinstance(x, int) and not isinstance(x, bool) for x in value
    )

@bp.route("", methods=["GET"])
@login_required
def list_files():
    user = current_user()
    if user is None:
        return jsonify({"message": "Unauthorized"}), 401
    files = (File.query.filter_by(user_id=user.id)
             .order_by(File.position.asc(), File.uploaded_at.asc())
             .limit(500).all())
    return jsonify([f.to_dict() for f in files])

@bp.route("/<int:file_id>", methods=["DELETE"])
@login_required
def delete_file(file_id: int):
    user = current_user()
    if user is None:
        return jsonify({"message": "Unauthorized"}), 401
    uf = db.session.get(File, file_id)
    if not uf:
        return jsonify({"message": "File not found"}), 404
    if uf.user_id != user.id:
        return jsonify({"message": "Forbidden"}), 403

    name = uf.original_name
    size = _remove_file(uf, user.id)
    db.session.commit()

    # registro já removido; se o crédito falhar o reconcile corrige o contador
    get_storage().credit(user.id, size)

    return jsonify({
        "message": "File deleted successfully",
        "filename": name,
        "freed": size,
        "freedFormatted": format_size(size),
    })

@bp.route("/bulk-delete", methods=["POST"])
@login_required
def bulk_delete():
    user = current_user()
    if user is None:
        return jsonify({"message": "Unauthorized"}), 401
    payload = request.get_json(silent=True)
    raw_ids = payload.get("ids") if isinstance(payload, dict) else None
    if not _is_id_list(raw_ids):
        return jsonify({"message": "ids must be a list of integers"}), 400
    ids = set(raw_ids)
    if not ids:
        return jsonify({"message": "No files selected"}), 400

    files = File.query.filter(File.id.in_(ids), File.user_id == user.id).all()
    freed = 0
    for uf in files:
        freed += _remove_file(uf, user.id)
    db.session.commit()

    if freed:
        get_storage().credit(user.id, freed)

    return jsonify({
        "message": "Files deleted successfully",
        "deletedFiles": len(files),
        "freed": freed,
        "freedFormatted": format_size(freed),
    })
