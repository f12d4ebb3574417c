# tests/conftest.py
# -*- coding: utf-8 -*-
import os
import sys
import uuid
import pathlib
import importlib
import tempfile

import pytest


# --------------------------------------------------------------------------------------
# Limpeza de arquivos de DB residuais (ex.: test.sqlite)
# --------------------------------------------------------------------------------------
@pytest.fixture(scope="session", autouse=True)
def _cleanup_test_sqlite_files():
    for fname in ("test.sqlite", "test.db"):
        if os.path.exists(fname):
            try: os.remove(fname)
            except OSError: pass
    yield
    for fname in ("test.sqlite", "test.db"):
        if os.path.exists(fname):
            try: os.remove(fname)
            except OSError: pass

# =====================================================================================
# Localização do projeto (garante que "onnoff_app" esteja no sys.path)
# =====================================================================================
def _add_project_root():
    here = pathlib.Path(__file__).resolve()
    for base in [here.parent, here.parent.parent, pathlib.Path.cwd()]:
        for candidate in [base, *base.parents]:
            if (candidate / "onnoff_app").is_dir():
                if str(candidate) not in sys.path:
                    sys.path.insert(0, str(candidate))
                return candidate
    return None


PROJECT_ROOT = _add_project_root()


# =====================================================================================
# Ambiente de testes unitários (sem serviços externos)
# =====================================================================================
@pytest.fixture(autouse=True, scope="session")
def _testing_env():
    os.environ["APP_ENV"] = "testing"
    os.environ["FLASK_ENV"] = "testing"
    os.environ["TESTING"] = "1"
    os.environ.setdefault("SECRET_KEY", "testing-secret")
    yield


def _import(modpath, name=None):
    mod = importlib.import_module(modpath)
    return getattr(mod, name) if name else mod


# =====================================================================================
# App Flask com SQLite temporário e schema criado uma vez por sessão
# =====================================================================================
@pytest.fixture(scope="session")
def app(_testing_env):
    fd, db_path = tempfile.mkstemp(prefix="onnoff_test_", suffix=".sqlite")
    os.close(fd)
    upload_root = tempfile.mkdtemp(prefix="onnoff_uploads_")

    create_app = _import("onnoff_app", "create_app")
    TestingConfig = _import("config", "TestingConfig")
    app = create_app(TestingConfig, overrides={
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
        "UPLOAD_FOLDER": upload_root,
        "SECRET_KEY": "testing-secret",
    })

    from onnoff_app.extensions import db
    with app.app_context():
        db.create_all()

    yield app

    # teardown
    with app.app_context():
        db.session.remove()
    try:
        os.remove(db_path)
    except OSError:
        pass


# =====================================================================================
# Object store local isolado por teste
# =====================================================================================
@pytest.fixture(autouse=True)
def object_store(app, tmp_path):
    from onnoff_app.services.object_store import LocalObjectStore
    store = LocalObjectStore(str(tmp_path / "uploads"))
    previous = app.extensions.get("object_store")
    app.extensions["object_store"] = store
    yield store
    app.extensions["object_store"] = previous


# =====================================================================================
# Client e sessão de DB por teste
# =====================================================================================
@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db_session(app):
    from onnoff_app.extensions import db
    with app.app_context():
        try:
            yield db.session
        finally:
            try:
                db.session.rollback()
            except Exception:
                pass
            db.session.close()


@pytest.fixture
def storage(app, db_session):
    from onnoff_app.services.storage import get_storage
    return get_storage()


# =====================================================================================
# Usuários e clientes logados
# =====================================================================================
def make_user(db_session, **fields):
    from onnoff_app.models.user import User
    data = {
        "name": "User",
        "email": f"user+{uuid.uuid4().hex[:8]}@test.com",
        "role": "PHOTOGRAPHER",
    }
    data.update(fields)
    u = User(**data)
    db_session.add(u); db_session.commit()
    return u


def make_file(db_session, user, size, name="photo.jpg"):
    from onnoff_app.models.file import File
    key = f"photos/{user.id}/{uuid.uuid4().hex[:8]}-{name}"
    f = File(user_id=user.id, filename=name, original_name=name, storage_key=key,
             url=f"/uploads/{key}", mime_type="image/jpeg", size_bytes=size)
    db_session.add(f); db_session.commit()
    return f


@pytest.fixture
def user_admin(db_session):
    return make_user(db_session, name="Admin", email=f"admin+{uuid.uuid4().hex[:6]}@test.com",
                     is_admin=True)


@pytest.fixture
def user_normal(db_session):
    return make_user(db_session)


@pytest.fixture
def user_client_role(db_session):
    return make_user(db_session, name="Client", role="CLIENT")


def _login(client, user):
    with client.session_transaction() as sess:
        sess["user"] = {"id": user.id, "email": user.email, "is_admin": bool(user.is_admin)}
    return client


@pytest.fixture
def logged_client_admin(client, user_admin):
    return _login(client, user_admin)


@pytest.fixture
def logged_client_user(client, user_normal):
    return _login(client, user_normal)


@pytest.fixture
def user_factory(db_session):
    return lambda **fields: make_user(db_session, **fields)


@pytest.fixture
def file_factory(db_session):
    return lambda user, size, name="photo.jpg": make_file(db_session, user, size, name)


@pytest.fixture
def login(client):
    return lambda user: _login(client, user)
