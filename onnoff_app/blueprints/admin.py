# onnoff_app/blueprints/admin.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from flask import Blueprint, current_app, jsonify

from onnoff_app.decorators import admin_required
from onnoff_app.services.storage import get_storage, format_size


bp = Blueprint("admin", __name__, url_prefix="/admin")


@bp.route("/storage/reconcile/<int:user_id>", methods=["POST"])
@admin_required
def reconcile_user(user_id: int):
    actual = get_storage().reconcile(user_id)
    return jsonify({"userId": user_id, "used": actual, "usedFormatted": format_size(actual)})

@bp.route("/storage/reconcile-all", methods=["POST"])
@admin_required
def reconcile_all():
    results = get_storage().migrate_all()
    current_app.logger.info("Reconcile geral executado para %d usuários", len(results))
    return jsonify({
        "users": len(results),
        "totalUsed": sum(total for _, total in results),
        "results": [{"userId": uid, "used": total} for uid, total in results],
    })
