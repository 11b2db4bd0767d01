"""
Configuration loader tests.

Verifies:
- Source resolution: explicit path, then LEDGER_CONFIG, then defaults
- DATABASE_URL overrides database.url
- Unknown sections and keys are rejected
"""

from pathlib import Path

import pytest
import yaml

from ledger_config import load_settings, parse_settings
from ledger_config.loader import load_yaml_file

EXAMPLE_CONFIG = Path(__file__).resolve().parents[2] / "config" / "ledger.example.yaml"


@pytest.fixture
def write_config(tmp_path):
    def _write(data, name="ledger.yaml"):
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data))
        return path

    return _write


class TestLoadSettings:
    def test_defaults_without_source(self):
        settings = load_settings(environ={})
        assert settings.database.url == "sqlite:///:memory:"

    def test_explicit_path(self, write_config):
        path = write_config({"posting": {"currency": "EUR"}, "logging": {"level": "debug"}})
        settings = load_settings(path, environ={})
        assert settings.posting.currency == "EUR"
        assert settings.logging.level == "DEBUG"
        assert settings.inventory.update_cost_on_receipt is False

    def test_env_var_path(self, write_config):
        path = write_config({"inventory": {"update_cost_on_receipt": True}})
        settings = load_settings(environ={"LEDGER_CONFIG": str(path)})
        assert settings.inventory.update_cost_on_receipt is True

    def test_explicit_path_wins_over_env(self, write_config):
        explicit = write_config({"posting": {"currency": "GBP"}}, "explicit.yaml")
        from_env = write_config({"posting": {"currency": "JPY"}}, "env.yaml")
        settings = load_settings(explicit, environ={"LEDGER_CONFIG": str(from_env)})
        assert settings.posting.currency == "GBP"

    def test_database_url_override(self, write_config):
        path = write_config({"database": {"url": "sqlite:///file.db", "pool_size": 3}})
        settings = load_settings(
            path, environ={"DATABASE_URL": "postgresql://u:p@localhost/ledger"}
        )
        assert settings.database.url == "postgresql://u:p@localhost/ledger"
        assert settings.database.pool_size == 3

    def test_legacy_aliases_list(self, write_config):
        path = write_config({"references": {"legacy_aliases": ["INV-", "SO-"]}})
        assert load_settings(path, environ={}).references.legacy_aliases == ("INV-", "SO-")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_settings(path, environ={}).posting.currency == "USD"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "nope.yaml", environ={})

    def test_example_config_parses(self):
        settings = load_settings(EXAMPLE_CONFIG, environ={})
        assert settings.database.isolation_level == "SERIALIZABLE"
        assert settings.references.legacy_aliases == ("INV-",)


class TestParseSettings:
    def test_unknown_section(self):
        with pytest.raises(ValueError, match="section"):
            parse_settings({"reports": {}})

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="posting"):
            parse_settings({"posting": {"rounding": "bankers"}})

    def test_invalid_value(self):
        with pytest.raises(ValueError, match="negative_stock"):
            parse_settings({"inventory": {"negative_stock": "block"}})

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_yaml_file(path)
