# onnoff_app/models/user.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime
from ..extensions import db

class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120))
    email = db.Column(db.String(180), unique=True, nullable=False, index=True)
    role = db.Column(db.String(20), default="CLIENT")   # PHOTOGRAPHER | CLIENT | ALL_FEATURES
    plan = db.Column(db.String(20), default="default")  # default | premium | enterprise
    is_admin = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # contabilidade de armazenamento; NULL = conta ainda não inicializada
    storage_used = db.Column(db.BigInteger, nullable=True)
    storage_limit = db.Column(db.BigInteger, nullable=True)

    files = db.relationship("File", backref="owner", lazy="dynamic")

    @property
    def can_upload(self) -> bool:
        return self.role in ("PHOTOGRAPHER", "ALL_FEATURES")
