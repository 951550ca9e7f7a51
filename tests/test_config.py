"""
Tests for settings loading.

Each test runs in a temporary working directory so the `.env` file it
writes is the only one pydantic-settings can see.
"""

import asyncio
from decimal import Decimal

from zenbudget.agents import ai_agents
from zenbudget.config import GeminiSettings, GoogleSheetsSettings, validate_all_settings
from zenbudget.orchestrator import create_app_components
from zenbudget.services.sync import SyncStatus
from zenbudget.state.mutations import set_expense


SERVICE_VARS = [
    "GEMINI_API_KEY",
    "GOOGLE_SHEETS_CREDENTIALS_PATH",
    "GOOGLE_SHEETS_SPREADSHEET_ID",
    "DEFAULT_MONTHLY_BUDGET",
    "DEFAULT_FIXED_BUDGET",
    "LOCAL_CACHE_DIR",
]


def use_env_file(monkeypatch, tmp_path, text):
    for name in SERVICE_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text(text, encoding="utf-8")


class TestEnvFile:
    """Tests that every settings group reads `.env`."""

    def test_gemini_from_env_file(self, monkeypatch, tmp_path):
        use_env_file(monkeypatch, tmp_path, "GEMINI_API_KEY=abc\nGEMINI_MODEL_NAME=gemini-test\n")

        settings = GeminiSettings()
        assert settings.api_key == "abc"
        assert settings.model_name == "gemini-test"

    def test_sheets_from_env_file(self, monkeypatch, tmp_path):
        (tmp_path / "sa.json").write_text("{}", encoding="utf-8")
        use_env_file(
            monkeypatch,
            tmp_path,
            f"GOOGLE_SHEETS_CREDENTIALS_PATH={tmp_path / 'sa.json'}\n"
            "GOOGLE_SHEETS_SPREADSHEET_ID=sheet-123\n",
        )

        settings = GoogleSheetsSettings()
        assert settings.spreadsheet_id == "sheet-123"
        assert settings.users_sheet_name == "Users"

    def test_validate_all_settings_sees_env_file(self, monkeypatch, tmp_path):
        use_env_file(monkeypatch, tmp_path, "GEMINI_API_KEY=abc\n")

        results = validate_all_settings()
        assert results["gemini"] is True
        assert results["app"] is True


class TestAppComponents:
    """Tests for the component factory."""

    def test_configured_budget_defaults_reach_new_documents(self, monkeypatch, tmp_path):
        """Test DEFAULT_MONTHLY_BUDGET / DEFAULT_FIXED_BUDGET shape a new user's document."""
        use_env_file(
            monkeypatch,
            tmp_path,
            "DEFAULT_MONTHLY_BUDGET=5000\nDEFAULT_FIXED_BUDGET=750\nLOCAL_CACHE_DIR=cache\n",
        )
        monkeypatch.setattr(ai_agents, "_load_model", lambda temperature=None: None)

        sync, _, _, _ = create_app_components(use_storage=False)
        state = asyncio.run(sync.load("u1", "Asha"))

        assert state.default_monthly_budget == Decimal("5000")
        assert state.default_fixed_budget == Decimal("750")

    def test_without_storage_runs_offline_on_local_cache(self, monkeypatch, tmp_path):
        use_env_file(monkeypatch, tmp_path, "LOCAL_CACHE_DIR=cache\n")
        monkeypatch.setattr(ai_agents, "_load_model", lambda temperature=None: None)

        sync, _, _, _ = create_app_components(use_storage=False)
        edited = set_expense(asyncio.run(sync.load("u1")), "2025-01-10", 500)

        assert sync.status == SyncStatus.OFFLINE
        assert asyncio.run(sync.save("u1", edited)) is None
        assert (tmp_path / "cache" / "u1.json").exists()
