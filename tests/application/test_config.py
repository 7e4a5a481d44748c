import pytest
from pydantic import ValidationError

from reprise.application.config import AppConfig, SchedulerParameters, resolve_config
from reprise.domain.constants import DEFAULT_DB_PATH


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "config.toml"
    path.write_text(
        'db_path = "~/decks/cards.db"\n'
        "card_limit = 20\n"
        "\n"
        "[scheduler]\n"
        "target_retention = 0.8\n"
        "maximum_interval_days = 365\n",
        encoding="utf-8",
    )
    monkeypatch.setattr(
        "reprise.application.config.CONFIG_PATHS", [tmp_path / "missing.toml", path]
    )
    return path


def test_defaults():
    """Test that defaults apply when no file, env or override is present."""
    config = resolve_config()
    assert config.db_path == DEFAULT_DB_PATH
    assert config.card_limit is None
    assert config.new_card_limit is None
    assert config.scheduler == SchedulerParameters()


def test_toml_file_is_read(config_file, mock_home):
    """Test that the first existing TOML file is loaded, nested tables included."""
    config = resolve_config()
    assert config.card_limit == 20
    assert config.db_path == mock_home / "decks" / "cards.db"
    assert config.scheduler.target_retention == 0.8
    assert config.scheduler.maximum_interval_days == 365


def test_env_overrides_file(config_file, monkeypatch):
    """Test that environment variables beat the TOML file."""
    monkeypatch.setenv("REPRISE_CARD_LIMIT", "5")
    assert resolve_config().card_limit == 5


def test_nested_env_variable(monkeypatch):
    """Test that __ reaches into the scheduler section."""
    monkeypatch.setenv("REPRISE_SCHEDULER__TARGET_RETENTION", "0.85")
    assert resolve_config().scheduler.target_retention == 0.85


def test_cli_overrides_win(config_file, monkeypatch):
    """Test that CLI overrides beat environment variables."""
    monkeypatch.setenv("REPRISE_CARD_LIMIT", "5")
    config = resolve_config({"card_limit": 3, "new_card_limit": None})
    assert config.card_limit == 3
    assert config.new_card_limit is None


def test_none_overrides_do_not_mask_lower_layers(config_file):
    """Test that unset CLI options fall through to lower layers."""
    assert resolve_config({"card_limit": None, "db_path": None}).card_limit == 20


def test_negative_limit_rejected():
    with pytest.raises(ValidationError):
        resolve_config({"card_limit": -1})


def test_invalid_scheduler_section_rejected(monkeypatch):
    """Test that out-of-range scheduler values fail validation."""
    monkeypatch.setenv("REPRISE_SCHEDULER__TARGET_RETENTION", "1.5")
    with pytest.raises(ValidationError):
        AppConfig()


def test_verbose_from_env(monkeypatch):
    """Test that verbosity can be raised through the environment."""
    monkeypatch.setenv("REPRISE_VERBOSE", "2")
    assert resolve_config().verbose == 2
    assert resolve_config({"verbose": None}).verbose == 2
