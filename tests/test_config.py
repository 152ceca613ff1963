"""Tests for configuration management."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from edgemetrikks.config import (
    BatchSettings,
    DatabaseSettings,
    EnrichmentSettings,
    GeoIPSettings,
    Settings,
    TrinoSettings,
    get_settings,
)


def test_default_settings():
    """Test default settings are loaded correctly."""
    settings = Settings()

    assert settings.name == "edgemetrikks"
    assert settings.version == "0.1.0"
    assert settings.environment == "development"
    assert settings.log_level == "INFO"


def test_environment_override(monkeypatch):
    """Test that environment variables override defaults."""
    monkeypatch.setenv("APP_NAME", "Custom Name")
    monkeypatch.setenv("APP_LOG_LEVEL", "debug")
    monkeypatch.setenv("APP_ENVIRONMENT", "production")

    settings = Settings()

    assert settings.name == "Custom Name"
    assert settings.log_level == "DEBUG"
    assert settings.environment == "production"


def test_invalid_log_level(monkeypatch):
    """Unknown log levels are rejected."""
    monkeypatch.setenv("APP_LOG_LEVEL", "chatty")

    with pytest.raises(ValidationError):
        Settings()


def test_settings_are_frozen():
    """Settings cannot be mutated after construction."""
    settings = Settings()

    with pytest.raises(ValidationError):
        settings.log_level = "DEBUG"


def test_database_settings():
    """Test database configuration."""
    settings = Settings()

    assert settings.database.url.startswith("mysql+pymysql://")
    assert settings.database.echo is False


def test_database_url_must_be_sqlalchemy_url():
    """A bare host name is not a database URL."""
    with pytest.raises(ValueError, match="Database URL must be a SQLAlchemy URL"):
        DatabaseSettings(url="localhost")


def test_geoip_settings():
    """Test GeoIP configuration."""
    # Create a dummy GeoIP file for testing
    test_db = Path("test_geoip.mmdb")
    test_db.touch()

    try:
        settings = Settings(geoip=GeoIPSettings(db_path=test_db, validate_db_path=True))
        assert settings.geoip.db_path == test_db
        assert settings.geoip.locales == ["en"]
    finally:
        test_db.unlink()


def test_geoip_missing_file():
    """Test GeoIP validation fails for missing file when validation is enabled."""
    with pytest.raises(ValueError, match="GeoIP database file not found"):
        GeoIPSettings(
            db_path=Path("/nonexistent/file.mmdb"),
            validate_db_path=True  # Enable validation
        )


def test_geoip_invalid_locales():
    """Unsupported locales are rejected."""
    with pytest.raises(ValueError, match="Invalid GeoIP locales"):
        GeoIPSettings(locales=["xx"])


def test_geoip_empty_locales():
    """At least one locale is needed."""
    with pytest.raises(ValueError, match="At least one GeoIP locale is required"):
        GeoIPSettings(locales=[])


def test_trino_settings():
    """Test Trino configuration."""
    settings = Settings()

    assert settings.trino.host == "localhost"
    assert settings.trino.port == 9080
    assert settings.trino.qualified_table == "hive.cfrtl.rtl"
    assert settings.trino.year is None
    assert settings.trino.month is None


def test_trino_rejects_non_identifier_table():
    """Table names end up in SQL, so they must be plain identifiers."""
    with pytest.raises(ValueError, match="Not a valid SQL identifier"):
        TrinoSettings(table="rtl; DROP TABLE rtl")


def test_batch_and_enrichment_settings():
    """Test batch file and error policy configuration."""
    settings = Settings()

    assert settings.batch.path == Path("data/output.parquet")
    assert settings.batch.compression == "snappy"
    assert settings.enrichment.on_error == "abort"


def test_invalid_error_policy():
    """Only abort and skip are known policies."""
    with pytest.raises(ValidationError):
        EnrichmentSettings(on_error="ignore")


def test_invalid_compression():
    """Only the listed Parquet codecs are accepted."""
    with pytest.raises(ValidationError):
        BatchSettings(compression="lz77")


def test_environment_properties():
    """Test environment helper properties."""
    dev_settings = Settings(environment="development")
    assert dev_settings.is_development is True
    assert dev_settings.is_production is False

    prod_settings = Settings(environment="production")
    assert prod_settings.is_production is True
    assert prod_settings.is_development is False


def test_settings_caching():
    """Test that get_settings returns cached instance."""
    settings1 = get_settings()
    settings2 = get_settings()

    # Should be the same instance due to @lru_cache
    assert settings1 is settings2


def test_nested_settings_override(monkeypatch):
    """Test overriding nested settings via environment variables."""
    monkeypatch.setenv("TRINO_HOST", "trino.internal")
    monkeypatch.setenv("TRINO_YEAR", "2022")
    monkeypatch.setenv("ENRICH_ON_ERROR", "skip")
    monkeypatch.setenv("BATCH_COMPRESSION", "zstd")

    settings = Settings()

    assert settings.trino.host == "trino.internal"
    assert settings.trino.year == "2022"
    assert settings.enrichment.on_error == "skip"
    assert settings.batch.compression == "zstd"


def test_list_settings_from_env(monkeypatch):
    """Test list settings can be set via environment variables."""
    monkeypatch.setenv("GEOIP_LOCALES", '["de"]')

    settings = Settings()

    assert "de" in settings.geoip.locales
    assert len(settings.geoip.locales) == 1
