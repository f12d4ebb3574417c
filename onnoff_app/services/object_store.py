# onnoff_app/services/object_store.py
# -*- coding: utf-8 -*-
"""Object store das fotos: S3 em produção, disco local em dev/testes."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from urllib.parse import urlparse

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from flask import current_app

from ..errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class S3ObjectStore:
    def __init__(self, bucket: str, region: str, public_base_url: str = "",
                 access_key: str = "", secret_key: str = "", client=None):
        self.bucket = bucket
        self.region = region
        self.public_base_url = public_base_url.rstrip("/")
        self.client = client or boto3.client(
            "s3",
            region_name=region,
            aws_access_key_id=access_key or None,
            aws_secret_access_key=secret_key or None,
            config=BotoConfig(signature_version="s3v4"),
        )

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data,
                                   ContentType=content_type, ACL="public-read")
        except (ClientError, BotoCoreError) as exc:
            raise StoreUnavailableError(f"S3 upload failed for {key}") from exc
        return self.public_url(key)

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise StoreUnavailableError(f"S3 delete failed for {key}") from exc

    def key_from_url(self, url: str | None) -> str | None:
        if not url:
            return None
        if self.public_base_url and url.startswith(self.public_base_url + "/"):
            return url[len(self.public_base_url) + 1:]
        if "amazonaws.com" not in url:
            return None
        return urlparse(url).path.lstrip("/") or None


class LocalObjectStore:
    def __init__(self, root: str, url_prefix: str = "/uploads"):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    def _path(self, key: str) -> Path:
        target = (self.root / key).resolve()
        if self.root.resolve() not in target.parents:
            raise ValueError(f"Invalid storage key: {key!r}")
        return target

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        target = self._path(key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise StoreUnavailableError(f"Local write failed for {key}") from exc
        logger.debug("Saved locally: %s", target)
        return f"{self.url_prefix}/{key}"

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StoreUnavailableError(f"Local delete failed for {key}") from exc

    def key_from_url(self, url: str | None) -> str | None:
        if not url or not url.startswith(self.url_prefix + "/"):
            return None
        return url[len(self.url_prefix) + 1:]


def init_object_store(app):
    cfg = app.config
    if cfg.get("S3_BUCKET"):
        store = S3ObjectStore(
            bucket=cfg["S3_BUCKET"],
            region=cfg.get("S3_REGION", "us-east-1"),
            public_base_url=cfg.get("S3_PUBLIC_BASE_URL", ""),
            access_key=cfg.get("AWS_ACCESS_KEY_ID", ""),
            secret_key=cfg.get("AWS_SECRET_ACCESS_KEY", ""),
        )
    else:
        root = cfg.get("UPLOAD_FOLDER") or os.path.join(app.root_path, "..", "uploads")
        store = LocalObjectStore(root)
    app.extensions["object_store"] = store

def get_object_store():
    store = current_app.extensions.get("object_store")
    if store is None:
        init_object_store(current_app)
        store = current_app.extensions["object_store"]
    return store
