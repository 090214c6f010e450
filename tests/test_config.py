"""Tests for the configuration loader."""

import pytest

from scoreboard.config import load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("PORT", "ADMIN_PASS", "SESSION_SECRET"):
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:
    def test_missing_file_uses_defaults(self, tmp_path, capsys):
        settings = load_config(tmp_path / "absent.yaml")
        assert settings.port == 3000
        assert settings.tick_interval == 1.0
        assert settings.require_admin is True
        assert settings.admin_password is None
        assert "not found" in capsys.readouterr().out

    def test_yaml_values(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "server:\n"
            "  port: 8080\n"
            "  state_file: /data/board.json\n"
            "  tick_interval: 0.5\n"
            "  require_admin: false\n"
            "settings:\n"
            "  log_level: debug\n"
            "  max_retries: 3\n"
        )
        settings = load_config(path)
        assert settings.port == 8080
        assert settings.state_file == "/data/board.json"
        assert settings.tick_interval == 0.5
        assert settings.require_admin is False
        assert settings.log_level == "DEBUG"
        assert settings.max_retries == 3
        assert settings.base_backoff == 2

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path).port == 3000

    def test_environment_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("server:\n  port: 8080\n")
        monkeypatch.setenv("PORT", "9999")
        monkeypatch.setenv("ADMIN_PASS", "s3cret")
        monkeypatch.setenv("SESSION_SECRET", "cookie-key")

        settings = load_config(path)
        assert settings.port == 9999
        assert settings.admin_password == "s3cret"
        assert settings.session_secret == "cookie-key"

    @pytest.mark.parametrize(
        "raw, expected",
        [("'false'", False), ("'no'", False), ("'OFF'", False), ("'yes'", True), ("true", True)],
    )
    def test_require_admin_spellings(self, tmp_path, raw, expected):
        path = tmp_path / "config.yaml"
        path.write_text(f"server:\n  require_admin: {raw}\n")
        assert load_config(path).require_admin is expected

    def test_require_admin_rejects_nonsense(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("server:\n  require_admin: maybe\n")
        with pytest.raises(ValueError):
            load_config(path)

    def test_base_backoff_cast_to_float(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("settings:\n  base_backoff: '0.5'\n")
        settings = load_config(path)
        assert settings.base_backoff == 0.5
        assert isinstance(settings.base_backoff, float)
