import pytest

from config import (
    DEFAULT_FEATURES,
    FeatureGroup,
    SafetyMode,
    SETTINGS_PATH,
    load_config,
    parse_feature_groups,
    parse_safety_mode,
)
from errors import ConfigurationError

SETTINGS = """
server:
  name: ask-maia-test
  port: 9000
features:
  - ask-maia
safety_mode: write-enabled
project_id: proj-file
platform:
  kind: postgres
  dsn: postgresql://localhost/maia
auth:
  enabled: true
  api_keys:
    key-1: claude-desktop
"""


@pytest.fixture
def settings_file(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(SETTINGS)
    return str(path)


def test_bundled_settings_default_to_read_only_with_all_groups():
    config = load_config(SETTINGS_PATH, env={})
    assert config.safety_mode is SafetyMode.READ_ONLY
    assert config.read_only
    assert config.features == DEFAULT_FEATURES
    assert config.project_id is None
    assert config.server_port == 8300


def test_settings_file_values(settings_file):
    config = load_config(settings_file, env={})
    assert config.server_name == "ask-maia-test"
    assert config.server_port == 9000
    assert config.features == frozenset({FeatureGroup.ASK_MAIA})
    assert config.safety_mode is SafetyMode.WRITE_ENABLED
    assert config.project_id == "proj-file"
    assert config.platform.kind == "postgres"
    assert config.platform.dsn == "postgresql://localhost/maia"
    assert config.auth_enabled
    assert config.api_keys == {"key-1": "claude-desktop"}


def test_environment_overrides_file(settings_file):
    config = load_config(
        settings_file,
        env={
            "MAIA_FEATURES": "database,debug",
            "MAIA_SAFETY_MODE": "read-only",
            "SUPABASE_PROJECT_REF": "proj-env",
            "PORT": "8400",
            "MCP_AUTH_ENABLED": "false",
            "MCP_TRANSPORT": "stdio",
        },
    )
    assert config.features == frozenset({FeatureGroup.DATABASE, FeatureGroup.DEBUG})
    assert config.safety_mode is SafetyMode.READ_ONLY
    assert config.project_id == "proj-env"
    assert config.server_port == 8400
    assert not config.auth_enabled
    assert config.transport == "stdio"


def test_unknown_feature_group_names_the_entry():
    with pytest.raises(ConfigurationError, match="Unknown feature group 'storage'"):
        parse_feature_groups(["ask-maia", "storage"])


def test_unknown_feature_group_from_environment(settings_file):
    with pytest.raises(ConfigurationError, match="'storage'"):
        load_config(settings_file, env={"MAIA_FEATURES": "storage"})


def test_invalid_safety_mode():
    with pytest.raises(ConfigurationError, match="Invalid safety mode 'yolo'"):
        parse_safety_mode("yolo")


def test_safety_mode_accepts_enum_and_string():
    assert parse_safety_mode(SafetyMode.WRITE_ENABLED) is SafetyMode.WRITE_ENABLED
    assert parse_safety_mode(" read-only ") is SafetyMode.READ_ONLY


def test_missing_settings_file(tmp_path):
    with pytest.raises(ConfigurationError, match="Settings file not found"):
        load_config(str(tmp_path / "missing.yaml"), env={})


def test_config_is_frozen():
    config = load_config(SETTINGS_PATH, env={})
    with pytest.raises(Exception):
        config.safety_mode = SafetyMode.WRITE_ENABLED


def test_feature_groups_as_comma_separated_string():
    assert parse_feature_groups("ask-maia, debug") == frozenset({FeatureGroup.ASK_MAIA, FeatureGroup.DEBUG})


def test_scalar_feature_group_in_settings_file(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("features: ask-maia\n")

    config = load_config(str(path), env={})

    assert config.features == frozenset({FeatureGroup.ASK_MAIA})
