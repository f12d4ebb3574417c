# onnoff_app/blueprints/storage.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from flask import Blueprint, current_app, jsonify

from onnoff_app.blueprints.files import current_user
from onnoff_app.decorators import login_required
from onnoff_app.errors import StorageError
from onnoff_app.extensions import db
from onnoff_app.models.file import AuditLog
from onnoff_app.services.storage import get_storage, fallback_stats, usage_level


bp = Blueprint("storage", __name__, url_prefix="/api/storage")


def _stats_payload(stats) -> dict:
    data = stats.to_dict()
    data["level"] = usage_level(stats.used_percentage)
    return data

@bp.route("/stats", methods=["GET"])
@login_required
def stats():
    user = current_user()
    if user is None:
        return jsonify({"message": "Unauthorized"}), 401
    try:
        st = get_storage().get_stats(user.id)
    except StorageError as e:
        # a barra de uso nunca pode derrubar a tela: volta aos defaults
        current_app.logger.warning("Falha ao obter estatísticas de armazenamento: %s", e)
        st = fallback_stats()
    return jsonify(_stats_payload(st))

@bp.route("/reconcile", methods=["POST"])
@login_required
def reconcile():
    user = current_user()
    if user is None:
        return jsonify({"message": "Unauthorized"}), 401
    storage = get_storage()
    actual = storage.reconcile(user.id)

    db.session.add(AuditLog(user_id=user.id, action="reconcile", ref=f"storage:{actual}"))
    db.session.commit()

    payload = _stats_payload(storage.get_stats(user.id))
    payload["actualUsage"] = actual
    return jsonify(payload)
