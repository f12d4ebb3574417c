# onnoff_app/models/__init__.py
# -*- coding: utf-8 -*-
from .user import User
from .file import File, AuditLog


__all__ = [
    "User",
    "File",
    "AuditLog",
]
