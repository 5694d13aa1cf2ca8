import pytest

from gte.config import Settings


def test_database_url_from_pg_parts():
    settings = Settings(
        _env_file=None,
        database_url=None,
        pghost="db",
        pguser="gte",
        pgpassword="secret",
        pgdatabase="grievances",
    )
    assert settings.get_database_url() == "postgresql://gte:secret@db:5432/grievances"


def test_database_url_missing_raises():
    settings = Settings(
        _env_file=None,
        database_url=None,
        pghost=None,
        pguser=None,
        pgpassword=None,
        pgdatabase=None,
    )
    with pytest.raises(ValueError):
        settings.get_database_url()


def test_env_aliases(monkeypatch):
    monkeypatch.setenv("GROUP_RADIUS_M", "150")
    monkeypatch.setenv("SIMILARITY_THRESHOLD", "0.45")
    settings = Settings(_env_file=None)
    assert settings.group_radius_m == 150.0
    assert settings.similarity_threshold == 0.45
    assert settings.grievances_per_24h == 3
