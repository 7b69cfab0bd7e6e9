from __future__ import annotations

from pathlib import Path

import pytest
from alembic.script import ScriptDirectory

from approvalgrid.delivery.db.init_db import alembic_config, ensure_database


async def test_non_postgres_database_is_not_created():
    assert await ensure_database("sqlite+aiosqlite://") is False


def test_alembic_config_points_at_repository_ini():
    cfg = alembic_config()
    location = Path(cfg.get_main_option("script_location"))
    assert location == Path(cfg.config_file_name).parent / "alembic"


def test_missing_alembic_ini(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        alembic_config(tmp_path / "alembic.ini")


def test_migrations_form_a_single_chain():
    script = ScriptDirectory.from_config(alembic_config())
    assert script.get_heads() == ["0002_agency_webhooks"]
    assert script.get_revision("0002_agency_webhooks").down_revision == "0001_initial"
