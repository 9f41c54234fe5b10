"""Settings resolution."""

import pytest
from pydantic import ValidationError

from app.core.config import EnvironmentMode, Settings, StorageBackend


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("ENV_MODE", "STORAGE_BACKEND", "DEBUG", "DATABASE_URL", "CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)


def make_settings(**values) -> Settings:
    return Settings(_env_file=None, **values)


@pytest.mark.parametrize(
    "env_mode, expected",
    [
        ("development", StorageBackend.MEMORY),
        ("staging", StorageBackend.DATABASE),
        ("PRODUCTION", StorageBackend.DATABASE),
    ],
)
def test_storage_backend_follows_env_mode(env_mode, expected):
    assert make_settings(env_mode=env_mode).storage_backend == expected


def test_storage_backend_override_wins():
    settings = make_settings(env_mode="development", storage_backend="Database")

    assert settings.storage_backend == StorageBackend.DATABASE


def test_storage_backend_from_environment(monkeypatch):
    monkeypatch.setenv("ENV_MODE", "production")
    monkeypatch.setenv("STORAGE_BACKEND", "memory")

    settings = make_settings()

    assert settings.env_mode == EnvironmentMode.PRODUCTION
    assert settings.storage_backend == StorageBackend.MEMORY
    assert "STORAGE_BACKEND" in settings.validate_production_config()


def test_blank_override_means_unset():
    assert make_settings(env_mode="staging", storage_backend=" ").storage_backend == StorageBackend.DATABASE


def test_invalid_values_are_rejected():
    with pytest.raises(ValidationError):
        make_settings(env_mode="qa")
    with pytest.raises(ValidationError):
        make_settings(storage_backend="redis")
    with pytest.raises(ValidationError):
        make_settings(session_link_bytes=4)


def test_cors_origins_list():
    settings = make_settings(cors_origins="http://a.test, http://b.test,,")

    assert settings.cors_origins_list == ["http://a.test", "http://b.test"]


def test_session_url():
    settings = make_settings(app_base_url="https://orders.test/")

    assert settings.session_url("xyz") == "https://orders.test/session/xyz"


def test_production_defaults_are_flagged():
    settings = make_settings(env_mode="production", debug=True)

    assert settings.validate_production_config() == ["DATABASE_URL", "DEBUG"]


def test_development_is_never_flagged():
    assert make_settings(debug=True).validate_production_config() == []


def test_storage_factory_is_cached_until_reset(monkeypatch):
    from app.core.config import get_settings
    from app.services.storage import MemoryStorage, get_storage, reset_storage

    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    get_settings.cache_clear()
    reset_storage()
    try:
        first = get_storage()
        assert isinstance(first, MemoryStorage)
        assert get_storage() is first

        reset_storage()
        assert get_storage() is not first
    finally:
        get_settings.cache_clear()
        reset_storage()
