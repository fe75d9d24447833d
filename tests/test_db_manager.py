import pytest

from db.manager import DEFAULT_DATABASE_NAME, DatabaseManager, MongoSettings, db_manager


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("MONGODB_URI", "MONGODB_DATABASE", "MONGODB_MAX_POOL_SIZE"):
        monkeypatch.delenv(key, raising=False)

    settings = MongoSettings.from_env()

    assert settings.uri == "mongodb://localhost:27017"
    assert settings.database == DEFAULT_DATABASE_NAME
    kwargs = settings.client_kwargs()
    assert kwargs["tz_aware"] is True
    assert kwargs["maxPoolSize"] == 50
    assert "tlsCAFile" not in kwargs


def test_srv_uri_gets_ca_bundle(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONGODB_URI", "mongodb+srv://user:pw@cluster0.example.net")
    monkeypatch.setenv("MONGODB_DATABASE", "tracker_prod")

    settings = MongoSettings.from_env()
    kwargs = settings.client_kwargs()

    assert settings.database == "tracker_prod"
    assert kwargs["tls"] is True
    assert kwargs["tlsCAFile"].endswith(".pem")


def test_manager_is_singleton() -> None:
    assert DatabaseManager() is db_manager
