# onnoff_app/services/storage.py
# -*- coding: utf-8 -*-
"""
Contabilidade de armazenamento por usuário.

``storage_used`` é um contador em cache: débitos/créditos o ajustam com
UPDATEs atômicos no banco e ``reconcile`` o recalcula a partir da tabela de
arquivos, que é a fonte da verdade. A checagem de cota é só admissão
(check-then-act); dois uploads simultâneos podem, juntos, passar do limite.
"""
from __future__ import annotations

import logging
import math
import sys
from dataclasses import dataclass

from flask import current_app

from ..errors import InvalidAmountError, NotFoundError
from .stores import FileStore, UserStore

logger = logging.getLogger(__name__)

GIB = 1024 * 1024 * 1024

STORAGE_LIMITS = {
    "default": 2 * GIB,
    "premium": 10 * GIB,
    "enterprise": 50 * GIB,
}
DEFAULT_LIMIT = STORAGE_LIMITS["default"]

_UNITS = ("Bytes", "KB", "MB", "GB", "TB")

# teto da coluna BigInteger (storage_used)
MAX_BYTES = 2 ** 63 - 1


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_nan(value) -> bool:
    # math.isnan estoura com int maior que um float
    return isinstance(value, float) and math.isnan(value)


def format_size(value, decimals: int = 2) -> str:
    """1536 -> '1.5 KB'. Entradas nulas, negativas ou inválidas viram '0 Bytes'."""
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return "0 Bytes"
    if not _is_number(value) or _is_nan(value) or value <= 0:
        return "0 Bytes"
    if value > sys.float_info.max:
        value = float(1024 ** (len(_UNITS) - 1))

    dm = max(0, int(decimals))
    i = 0
    while value >= 1024 and i < len(_UNITS) - 1:
        value /= 1024
        i += 1

    text = "%.*f" % (dm, value)
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text} {_UNITS[i]}"


def _safe_bytes(value) -> int:
    """Normaliza um tamanho vindo de fora: lixo -> 0, float -> int. Mantém o sinal."""
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return 0
    if not _is_number(value) or (isinstance(value, float) and not math.isfinite(value)):
        return 0
    return int(value)


def _checked_amount(value) -> int:
    amount = _safe_bytes(value)
    if amount < 0 or amount > MAX_BYTES:
        raise InvalidAmountError(value)
    return amount


def usage_level(percentage) -> str:
    pct = percentage if _is_number(percentage) and not _is_nan(percentage) else 0
    if pct >= 90:
        return "critical"
    if pct >= 75:
        return "warning"
    return "ok"


@dataclass
class LimitCheck:
    has_space: bool
    current_usage: int
    limit: int
    remaining: int
    would_use: int
    additional_size: int

    def to_dict(self) -> dict:
        return {
            "hasSpace": self.has_space,
            "currentUsage": self.current_usage,
            "limit": self.limit,
            "remaining": self.remaining,
            "wouldUse": self.would_use,
            "additionalSize": self.additional_size,
        }


@dataclass
class StorageStats:
    used: int
    limit: int
    remaining: int
    used_percentage: float

    @property
    def used_formatted(self) -> str:
        return format_size(self.used)

    @property
    def limit_formatted(self) -> str:
        return format_size(self.limit)

    @property
    def remaining_formatted(self) -> str:
        return format_size(self.remaining)

    def to_dict(self) -> dict:
        return {
            "used": self.used,
            "limit": self.limit,
            "remaining": self.remaining,
            "usedPercentage": self.used_percentage,
            "usedFormatted": self.used_formatted,
            "limitFormatted": self.limit_formatted,
            "remainingFormatted": self.remaining_formatted,
        }


def fallback_stats(limit: int = DEFAULT_LIMIT) -> StorageStats:
    """Valores exibidos quando a contabilidade não responde: nunca bloqueia a UI."""
    return StorageStats(used=0, limit=limit, remaining=limit, used_percentage=0)


def storage_limit_message(check: LimitCheck, contact: str = "contact@onnoff.in") -> dict:
    pct = math.floor(check.current_usage / check.limit * 100 + 0.5) if check.limit > 0 else 0
    return {
        "title": "Storage Limit Exceeded",
        "message": (
            f"You need {format_size(check.additional_size)} but only have "
            f"{format_size(check.remaining)} remaining. "
            f"Current usage: {format_size(check.current_usage)} of {format_size(check.limit)} ({pct}%)"
        ),
        "suggestion": (
            "Delete some files to free up space, or contact us at "
            f"{contact} if you need more than {format_size(check.limit)} storage."
        ),
    }


class StorageAccountant:
    """Operações de cota sobre os stores de usuários e arquivos. Não guarda estado."""

    def __init__(self, users: UserStore | None = None, files: FileStore | None = None,
                 default_limit: int = DEFAULT_LIMIT):
        self.users = users or UserStore()
        self.files = files or FileStore()
        self.default_limit = default_limit

    def limit_for_plan(self, plan) -> int:
        if plan and plan != "default" and plan in STORAGE_LIMITS:
            return STORAGE_LIMITS[plan]
        return self.default_limit

    def ensure_account(self, user_id) -> tuple[int, int]:
        """
        Lê (used, limit) do usuário, inicializando campos ausentes.

        Único ponto de inicialização preguiçosa: check_limit, get_stats, debit e
        credit passam por aqui. Levanta NotFoundError para usuário inexistente.
        """
        row = self.users.find_by_id(user_id)
        if row is None:
            raise NotFoundError(user_id)

        used = row.storage_used or 0
        limit = row.storage_limit or self.limit_for_plan(row.plan)
        if row.storage_used is None or row.storage_limit is None:
            self.users.init_missing(user_id, used=used, limit=limit)
            logger.info("Initialized storage account for user %s (limit %s)", user_id, format_size(limit))
        return used, limit

    def check_limit(self, user_id, additional_bytes=0) -> LimitCheck:
        additional = max(0, _safe_bytes(additional_bytes))
        used, limit = self.ensure_account(user_id)
        would_use = used + additional
        return LimitCheck(
            has_space=would_use <= limit,
            current_usage=used,
            limit=limit,
            remaining=max(0, limit - used),
            would_use=would_use,
            additional_size=additional,
        )

    def check_batch_limit(self, user_id, sizes) -> LimitCheck:
        """Admissão do lote inteiro de uma vez, antes de qualquer escrita no object store."""
        total = sum(max(0, _safe_bytes(s)) for s in (sizes or ()))
        return self.check_limit(user_id, total)

    def debit(self, user_id, size) -> None:
        amount = _checked_amount(size)
        self.ensure_account(user_id)
        if not self.users.increment(user_id, amount):
            raise NotFoundError(user_id)
        logger.info("Added %s to user %s storage usage", format_size(amount), user_id)

    def credit(self, user_id, size) -> None:
        amount = _checked_amount(size)
        self.ensure_account(user_id)
        # o clamp em zero é feito no próprio UPDATE
        if not self.users.decrement_clamped(user_id, amount):
            raise NotFoundError(user_id)
        logger.info("Removed %s from user %s storage usage", format_size(amount), user_id)

    def get_stats(self, user_id) -> StorageStats:
        used, limit = self.ensure_account(user_id)
        pct = round(used / limit * 100, 2) if limit > 0 else 0
        return StorageStats(
            used=used,
            limit=limit,
            remaining=max(0, limit - used),
            used_percentage=pct,
        )

    def reconcile(self, user_id) -> int:
        """Recalcula storage_used somando os arquivos do usuário e sobrescreve o contador."""
        row = self.users.find_by_id(user_id)
        if row is None:
            raise NotFoundError(user_id)

        actual = self.files.sum_size_by_owner(user_id)
        values = {"storage_used": actual}
        if row.storage_limit is None:
            values["storage_limit"] = self.limit_for_plan(row.plan)
        self.users.set_fields(user_id, **values)

        if row.storage_used is not None and row.storage_used != actual:
            logger.warning("Storage drift for user %s: cached %s, actual %s",
                           user_id, row.storage_used, actual)
        logger.info("Recalculated storage usage for user %s: %s", user_id, format_size(actual))
        return actual

    def migrate_all(self) -> list[tuple[int, int]]:
        """Backfill de implantação: reconcile de todos os usuários."""
        ids = self.users.all_ids()
        logger.info("Starting storage migration for %d users", len(ids))
        results = []
        for user_id in ids:
            results.append((user_id, self.reconcile(user_id)))
        logger.info("Storage migration completed")
        return results


def init_storage(app):
    app.extensions["storage"] = StorageAccountant(
        default_limit=int(app.config.get("STORAGE_DEFAULT_LIMIT", DEFAULT_LIMIT)),
    )

def get_storage() -> StorageAccountant:
    acc = current_app.extensions.get("storage")
    if acc is None:
        init_storage(current_app)
        acc = current_app.extensions["storage"]
    return acc
