"""The Alembic migration produces the same media_jobs table as the ORM model."""
import os

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from mediajobs.models.job_record import MediaJobRecord

ALEMBIC_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "backend", "alembic"))


def _config(db_path):
    cfg = Config()
    cfg.set_main_option("script_location", ALEMBIC_DIR)
    cfg.set_main_option("sqlalchemy.url", f"sqlite+aiosqlite:///{db_path}")
    return cfg


def test_upgrade_matches_model(tmp_path):
    db_path = tmp_path / "migrated.db"
    command.upgrade(_config(db_path), "head")

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        inspector = inspect(engine)
        columns = {c["name"] for c in inspector.get_columns("media_jobs")}
        indexes = {tuple(i["column_names"]) for i in inspector.get_indexes("media_jobs")}
    finally:
        engine.dispose()

    assert columns == {c.name for c in MediaJobRecord.__table__.columns}
    assert {("provider_job_id",), ("status",), ("next_poll_at",)} <= indexes


def test_downgrade_drops_table(tmp_path):
    db_path = tmp_path / "migrated.db"
    cfg = _config(db_path)
    command.upgrade(cfg, "head")
    command.downgrade(cfg, "base")

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        assert "media_jobs" not in inspect(engine).get_table_names()
    finally:
        engine.dispose()
