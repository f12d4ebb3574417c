# onnoff_app/services/stores.py
# -*- coding: utf-8 -*-
"""
Acesso ao banco usado pela contabilidade de armazenamento.

Toda escrita é um único UPDATE executado pelo banco (nunca ler-modificar-gravar
na aplicação), e qualquer falha do SQLAlchemy sai como StoreUnavailableError.
"""
from __future__ import annotations

from functools import wraps

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import SQLAlchemyError

from ..errors import StoreUnavailableError
from ..extensions import db
from ..models import File, User


def _store_call(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreUnavailableError(f"{fn.__qualname__} failed: {exc.__class__.__name__}") from exc
    return wrapper


class UserStore:
    """Campos storage_used/storage_limit da tabela users."""

    @_store_call
    def find_by_id(self, user_id):
        return db.session.execute(
            select(User.id, User.storage_used, User.storage_limit, User.plan).where(User.id == user_id)
        ).first()

    @_store_call
    def all_ids(self) -> list[int]:
        return list(db.session.execute(select(User.id).order_by(User.id)).scalars())

    @_store_call
    def set_fields(self, user_id, **values) -> int:
        res = db.session.execute(
            update(User).where(User.id == user_id).values(**values)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        return res.rowcount

    @_store_call
    def init_missing(self, user_id, used: int, limit: int) -> None:
        # condicional: só grava o que ainda está NULL (idempotente)
        db.session.execute(
            update(User).where(User.id == user_id, User.storage_used.is_(None))
            .values(storage_used=used)
            .execution_options(synchronize_session=False)
        )
        db.session.execute(
            update(User).where(User.id == user_id, User.storage_limit.is_(None))
            .values(storage_limit=limit)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()

    @_store_call
    def increment(self, user_id, amount: int) -> int:
        res = db.session.execute(
            update(User).where(User.id == user_id)
            .values(storage_used=func.coalesce(User.storage_used, 0) + amount)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        return res.rowcount

    @_store_call
    def decrement_clamped(self, user_id, amount: int) -> int:
        res = db.session.execute(
            update(User).where(User.id == user_id)
            .values(storage_used=case(
                (User.storage_used > amount, User.storage_used - amount),
                else_=0,
            ))
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        return res.rowcount


class FileStore:
    """Metadados dos arquivos: fonte da verdade do que está armazenado."""

    @_store_call
    def sum_size_by_owner(self, user_id) -> int:
        total = db.session.execute(
            select(func.coalesce(func.sum(File.size_bytes), 0)).where(File.user_id == user_id)
        ).scalar()
        return int(total or 0)
