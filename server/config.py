import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

import yaml

from errors import ConfigurationError

SETTINGS_PATH = os.path.join(os.path.dirname(__file__), "config/settings.yaml")


class FeatureGroup(str, Enum):
    """Closed set of tool bundles that can be enabled as a unit."""

    ASK_MAIA = "ask-maia"
    DATABASE = "database"
    DEBUG = "debug"


class SafetyMode(str, Enum):
    READ_ONLY = "read-only"
    WRITE_ENABLED = "write-enabled"


DEFAULT_FEATURES = frozenset(FeatureGroup)
DEFAULT_SAFETY_MODE = SafetyMode.READ_ONLY

_TRUE_VALUES = ("1", "true", "yes", "on")


def parse_feature_groups(names: Iterable) -> FrozenSet[FeatureGroup]:
    """
    Validate requested feature-group names against the closed set.

    Raises ConfigurationError naming the first unrecognized entry. Lists are
    checked in the order given, sets in sorted order so the error is stable.
    A plain string is read as a comma-separated list.
    """
    if isinstance(names, str):
        names = [n for n in names.split(",") if n.strip()]
    elif isinstance(names, (set, frozenset)):
        names = sorted(names, key=str)

    groups = set()
    for name in names:
        if isinstance(name, FeatureGroup):
            groups.add(name)
            continue
        try:
            groups.add(FeatureGroup(str(name).strip()))
        except ValueError:
            allowed = ", ".join(g.value for g in FeatureGroup)
            raise ConfigurationError(
                f"Unknown feature group '{name}'. Allowed feature groups: {allowed}"
            ) from None
    return frozenset(groups)


def parse_safety_mode(value) -> SafetyMode:
    if isinstance(value, SafetyMode):
        return value
    try:
        return SafetyMode(str(value).strip())
    except ValueError:
        allowed = ", ".join(m.value for m in SafetyMode)
        raise ConfigurationError(
            f"Invalid safety mode '{value}'. Allowed values: {allowed}"
        ) from None


@dataclass(frozen=True)
class PlatformSettings:
    kind: str = "supabase"
    api_url: str = "https://api.supabase.com"
    access_token: Optional[str] = None
    dsn: Optional[str] = None
    database_name: str = "postgres"


@dataclass(frozen=True)
class ServerConfig:
    """
    Everything the server needs, read once at startup and never mutated.

    Passed explicitly to the composer, the MCP app and the HTTP app.
    """

    server_name: str = "ask-maia"
    server_host: str = "0.0.0.0"
    server_port: int = 8300
    transport: str = "http"
    features: FrozenSet[FeatureGroup] = DEFAULT_FEATURES
    safety_mode: SafetyMode = DEFAULT_SAFETY_MODE
    project_id: Optional[str] = None
    platform: PlatformSettings = field(default_factory=PlatformSettings)
    auth_enabled: bool = False
    api_keys: Mapping[str, str] = field(default_factory=dict)
    cors_origins: Tuple[str, ...] = ("*",)
    log_json: bool = False

    @property
    def read_only(self) -> bool:
        return self.safety_mode is SafetyMode.READ_ONLY


def _read_settings(path: str) -> dict:
    if not os.path.exists(path):
        raise ConfigurationError(f"Settings file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Settings file {path} must contain a mapping")
    return raw


def _flag(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def load_config(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> ServerConfig:
    """
    Build the ServerConfig from settings.yaml plus environment overrides.

    Environment wins over the file. Unknown feature groups or safety modes
    raise ConfigurationError.
    """
    env = os.environ if env is None else env
    path = path or env.get("MAIA_MCP_SETTINGS") or SETTINGS_PATH
    raw = _read_settings(path)

    server = raw.get("server", {}) or {}
    platform = raw.get("platform", {}) or {}
    auth = raw.get("auth", {}) or {}

    features = raw.get("features")
    if env.get("MAIA_FEATURES"):
        features = [f for f in env["MAIA_FEATURES"].split(",") if f.strip()]
    features = DEFAULT_FEATURES if features is None else parse_feature_groups(features)

    safety_mode = env.get("MAIA_SAFETY_MODE") or raw.get("safety_mode") or DEFAULT_SAFETY_MODE

    api_keys: Dict[str, str] = dict(auth.get("api_keys") or {})

    return ServerConfig(
        server_name=server.get("name", "ask-maia"),
        server_host=server.get("host", "0.0.0.0"),
        server_port=int(env.get("PORT") or server.get("port", 8300)),
        transport=env.get("MCP_TRANSPORT") or server.get("transport", "http"),
        features=features,
        safety_mode=parse_safety_mode(safety_mode),
        project_id=env.get("SUPABASE_PROJECT_REF") or raw.get("project_id"),
        platform=PlatformSettings(
            kind=env.get("MAIA_PLATFORM") or platform.get("kind", "supabase"),
            api_url=env.get("SUPABASE_API_URL") or platform.get("api_url", "https://api.supabase.com"),
            access_token=env.get("SUPABASE_ACCESS_TOKEN") or platform.get("access_token"),
            dsn=env.get("DATABASE_URL") or platform.get("dsn"),
            database_name=platform.get("database_name", "postgres"),
        ),
        auth_enabled=_flag(env.get("MCP_AUTH_ENABLED", auth.get("enabled", False))),
        api_keys=api_keys,
        cors_origins=tuple(raw.get("cors_origins") or ("*",)),
        log_json=_flag(env.get("LOG_JSON", False)),
    )
