# onnoff_app/errors.py
# -*- coding: utf-8 -*-
from __future__ import annotations


class StorageError(Exception):
    """Base de todos os erros da contabilidade de armazenamento."""

    status_code = 500

    def __init__(self, message: str = "", **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        payload = {"message": self.message or self.__class__.__name__}
        payload.update(self.context)
        return payload


class NotFoundError(StorageError):
    status_code = 404

    def __init__(self, user_id=None, message: str = "User not found"):
        super().__init__(message)
        self.user_id = user_id


class StoreUnavailableError(StorageError):
    """Banco de usuários/arquivos ou object store não respondeu."""

    status_code = 503


class InvalidAmountError(StorageError, ValueError):
    status_code = 400

    def __init__(self, amount, message: str = ""):
        super().__init__(message or f"Invalid byte amount: {amount!r}", amount=amount)
        self.amount = amount
