# onnoff_app/extensions.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import click
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy import text


db = SQLAlchemy()
migrate = Migrate()

def init_extensions(app):
    # DB/Migrate
    db.init_app(app)
    migrate.init_app(app, db)

def register_cli(app):
    from .services.storage import get_storage, format_size

    @app.cli.command("init-db")
    def init_db_cmd():
        """Cria as tabelas iniciais (DEV/MVP). Para produção: use flask db upgrade."""
        with app.app_context():
            # sanity check
            db.session.execute(text("SELECT 1"))
            db.create_all()
            print("Tabelas criadas.")

    @app.cli.command("storage-migrate")
    def storage_migrate_cmd():
        """Backfill único: calcula o uso de todos os usuários a partir dos arquivos."""
        with app.app_context():
            results = get_storage().migrate_all()
            for user_id, total in results:
                click.echo(f"  - user {user_id}: {format_size(total)} used")
            click.echo(f"Migração concluída ({len(results)} usuários).")

    @app.cli.command("storage-reconcile")
    @click.option("--user-id", type=int, required=True, help="Usuário a recalcular.")
    def storage_reconcile_cmd(user_id):
        """Recalcula o uso de um usuário a partir dos arquivos existentes."""
        with app.app_context():
            total = get_storage().reconcile(user_id)
            click.echo(f"user {user_id}: {format_size(total)} ({total} bytes)")
