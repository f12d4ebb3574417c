# onnoff_app/models/file.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime
from ..extensions import db

class File(db.Model):
    __tablename__ = "files"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    filename = db.Column(db.String(255), nullable=False)
    original_name = db.Column(db.String(255), nullable=False)
    storage_key = db.Column(db.String(512), nullable=False)  # chave no object store
    url = db.Column(db.Text, nullable=False)
    mime_type = db.Column(db.String(120), nullable=False)
    size_bytes = db.Column(db.BigInteger, nullable=False, default=0)
    position = db.Column(db.Integer, default=0)
    uploaded_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "filename": self.filename,
            "originalName": self.original_name,
            "path": self.storage_key,
            "url": self.url,
            "mimeType": self.mime_type,
            "size": self.size_bytes,
            "position": self.position,
            "uploadedAt": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }

class AuditLog(db.Model):
    __tablename__ = "audit_logs"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    action = db.Column(db.String(80), nullable=False)   # upload, delete, reconcile
    ref = db.Column(db.String(120))                     # e.g., file:<id> / storage:<bytes>
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    user = db.relationship("User", backref=db.backref("audit_logs", lazy="dynamic"))
