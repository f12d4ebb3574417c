# onnoff_app/blueprints/upload.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import os, time, secrets
from flask import Blueprint, current_app, request, jsonify
from sqlalchemy import func
from werkzeug.utils import secure_filename

from onnoff_app.blueprints.files import current_user
from onnoff_app.decorators import login_required
from onnoff_app.extensions import db
from onnoff_app.models.file import File, AuditLog
from onnoff_app.services.object_store import get_object_store
from onnoff_app.services.storage import get_storage, storage_limit_message, format_size


bp = Blueprint("upload", __name__, url_prefix="/api")


def _read_batch(files) -> tuple[list[tuple], str | None]:
    """
    Lê todos os arquivos e valida o lote ANTES da checagem de cota.
    A fronteira HTTP é quem rejeita tamanhos ruins; o contador só normaliza.
    """
    max_size = int(current_app.config.get("MAX_FILE_SIZE", 5 * 1024 * 1024))
    batch = []
    for f in files:
        if not f or not f.filename:
            continue
        data = f.read()
        size = len(data)
        if size == 0:
            return [], f'File "{f.filename}" is empty.'
        if size > max_size:
            return [], (f'File "{f.filename}" is too large ({size / (1024 * 1024):.1f}MB). '
                        f"Maximum size is {format_size(max_size)}.")
        batch.append((f, data, size))
    return batch, None

def _unique_filename(original: str) -> str:
    ext = os.path.splitext(secure_filename(original) or "")[1].lower()
    return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}{ext}"

@bp.route("/upload", methods=["POST"])
@login_required
def upload():
    user = current_user()
    if user is None:
        return jsonify({"message": "Unauthorized"}), 401
    if not user.can_upload:
        return jsonify({"message": "Forbidden"}), 403

    files = request.files.getlist("files")
    if not files:
        return jsonify({"message": "No files provided"}), 400

    batch, err = _read_batch(files)
    if err:
        return jsonify({"message": err}), 400
    if not batch:
        return jsonify({"message": "No files provided"}), 400

    # 1) Admissão do lote inteiro antes de qualquer escrita no object store
    storage = get_storage()
    check = storage.check_batch_limit(user.id, [size for _, _, size in batch])
    if not check.has_space:
        msg = storage_limit_message(check, contact=current_app.config.get("STORAGE_SUPPORT_CONTACT", "contact@onnoff.in"))
        current_app.logger.info("Upload recusado para user %s: precisa %s, restam %s",
                                user.id, format_size(check.additional_size), format_size(check.remaining))
        return jsonify({
            "message": msg["message"],
            "title": msg["title"],
            "suggestion": msg["suggestion"],
            "storageInfo": {
                "used": check.current_usage,
                "limit": check.limit,
                "remaining": check.remaining,
                "needed": check.additional_size,
            },
        }), 413

    store = get_object_store()
    last_pos = db.session.query(func.coalesce(func.max(File.position), 0)).filter(File.user_id == user.id).scalar() or 0
    uploaded = []

    # 2) Objeto -> registro -> débito, arquivo a arquivo
    for f, data, size in batch:
        filename = _unique_filename(f.filename)
        key = f"photos/{user.id}/{filename}"
        url = store.put(key, data, f.mimetype or "application/octet-stream")

        last_pos += 1
        rec = File(
            user_id=user.id,
            filename=filename,
            original_name=f.filename,
            storage_key=key,
            url=url,
            mime_type=f.mimetype or "application/octet-stream",
            size_bytes=size,
            position=last_pos,
        )
        db.session.add(rec)
        db.session.commit()

        db.session.add(AuditLog(user_id=user.id, action="upload", ref=f"file:{rec.id}", description=f.filename))
        db.session.commit()

        storage.debit(user.id, size)
        uploaded.append(rec.to_dict())

    return jsonify(uploaded), 201
