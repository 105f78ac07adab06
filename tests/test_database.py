import pytest
from sqlalchemy import create_engine, inspect

import models
from config import Settings
from database import get_db_connection, init_db


def test_init_db_creates_missing_tables():
    engine = create_engine("sqlite://")
    created = init_db(engine)
    assert set(created) == set(models.Base.metadata.tables)
    assert "saved_schools" in inspect(engine).get_table_names()
    assert init_db(engine) == []


def test_sqlite_connection_allows_threads():
    engine = get_db_connection("sqlite://")
    assert engine.dialect.name == "sqlite"


def test_settings_reject_default_page_above_max(monkeypatch):
    monkeypatch.setattr(Settings, "DEFAULT_PAGE_SIZE", 200)
    with pytest.raises(ValueError):
        Settings.validate()


def test_database_url_falls_back_to_sqlite(monkeypatch):
    monkeypatch.setattr(Settings, "DATABASE_URL", "")
    assert Settings.database_url().startswith("sqlite:///")
    assert Settings.database_url().endswith("app.db")
