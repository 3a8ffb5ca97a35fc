from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from lingua_srs import db

ROOT = Path(__file__).resolve().parent.parent


def test_upgrade_matches_models(tmp_path, monkeypatch):
    db_file = tmp_path / "migrated.db"
    monkeypatch.setenv("LINGUA_SRS_DB", str(db_file))
    cfg = Config(str(ROOT / "alembic.ini"))

    command.upgrade(cfg, "head")

    inspector = inspect(create_engine(f"sqlite:///{db_file}"))
    for table in db.Base.metadata.sorted_tables:
        migrated = {c["name"] for c in inspector.get_columns(table.name)}
        assert migrated == {c.name for c in table.columns}, table.name

    command.downgrade(cfg, "base")
    remaining = set(inspect(create_engine(f"sqlite:///{db_file}")).get_table_names())
    assert remaining <= {"alembic_version"}
