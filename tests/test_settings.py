"""Tests for environment-driven settings."""

import pytest

from household_ledger.config import LedgerSettings, get_settings, validate_all_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "GOOGLE_SHEETS_CREDENTIALS_PATH",
        "GOOGLE_SHEETS_SPREADSHEET_ID",
        "LEDGER_STORAGE_BACKEND",
        "LEDGER_SEED_DEFAULT_CATEGORIES",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestLedgerSettings:
    """Tests for LedgerSettings."""

    def test_defaults(self):
        settings = LedgerSettings()
        assert settings.storage_backend == "memory"
        assert settings.default_category_icon == "📦"
        assert settings.seed_default_categories is True
        assert settings.amount_places == 2

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "google_sheets")
        monkeypatch.setenv("LEDGER_SEED_DEFAULT_CATEGORIES", "false")
        settings = get_settings().ledger
        assert settings.storage_backend == "google_sheets"
        assert settings.seed_default_categories is False

    def test_unknown_backend_rejected(self, monkeypatch):
        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "postgres")
        with pytest.raises(ValueError):
            LedgerSettings()


class TestValidateAllSettings:
    """Tests for the startup settings check."""

    def test_missing_sheets_config_reported(self):
        status = validate_all_settings()
        assert status["ledger"] is True
        assert status["app"] is True
        assert status["google_sheets"] is False
        assert "google_sheets_error" in status

    def test_sheets_config_present(self, monkeypatch, tmp_path):
        credentials = tmp_path / "credentials.json"
        credentials.write_text("{}")
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", str(credentials))
        monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "sheet-123")

        status = validate_all_settings()

        assert status["google_sheets"] is True
        assert get_settings().google_sheets.expenses_sheet_name == "expenses"
