"""Configuration loader combining YAML profiles with environment overrides."""

from __future__ import annotations

import copy
import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

try:  # PyYAML is declared as a dependency but we fall back gracefully if missing.
    import yaml
except ImportError:  # pragma: no cover - exercised only when dependency missing.
    yaml = None  # type: ignore[assignment]

DEFAULT_ENVIRONMENT = "dev"
DEFAULT_STORE_BACKEND = "rest"
DEFAULT_STORE_TIMEOUT_SECONDS = 10.0
DEFAULT_NOTIFICATION_TIMEOUT_SECONDS = 5.0
DEFAULT_CORS_ORIGIN = "*"
DEFAULT_LOG_LEVEL = "INFO"
STORE_BACKENDS = ("rest", "postgres", "memory")
DEFAULT_PROFILE_DICT: dict[str, Any] = {
    "environment": DEFAULT_ENVIRONMENT,
    "store": {
        "backend": DEFAULT_STORE_BACKEND,
        "timeout_seconds": DEFAULT_STORE_TIMEOUT_SECONDS,
    },
    "cors": {"origin": DEFAULT_CORS_ORIGIN},
    "notifications": {"timeout_seconds": DEFAULT_NOTIFICATION_TIMEOUT_SECONDS},
    "logging": {"level": DEFAULT_LOG_LEVEL},
}
CONFIG_PROFILE_ENV = "ENTRY_RELAY_CONFIG_PROFILE"
CONFIG_DIR_ENV = "ENTRY_RELAY_CONFIG_DIR"
DEFAULT_PROFILE = "dev"
DEFAULT_CONFIG_ROOT = Path(__file__).resolve().parents[3] / "config" / "profiles"
CONFIG_EXTENSIONS = (".yaml", ".yml")

# Environment variable names shared with the existing deployment.
STORE_URL_ENV = "URL"
STORE_KEY_ENV = "SERVICE_ROLE_KEY"
STORE_BACKEND_ENV = "ENTRY_STORE_BACKEND"
STORE_TIMEOUT_ENV = "ENTRY_STORE_TIMEOUT_SECONDS"
CORS_ORIGIN_ENV = "CORS_ORIGIN"
SYNC_WEBHOOK_URL_ENV = "STRAPI_WEBHOOK_URL"
SYNC_WEBHOOK_SECRET_ENV = "STRAPI_WEBHOOK_SECRET"
REVALIDATE_URL_ENV = "NEXT_REVALIDATE_URL"
REVALIDATE_SECRET_ENV = "REVALIDATE_SECRET"
NOTIFICATION_TIMEOUT_ENV = "NOTIFICATION_TIMEOUT_SECONDS"
LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class StoreConfig:
    url: Optional[str] = None
    service_role_key: Optional[str] = None
    backend: str = DEFAULT_STORE_BACKEND
    timeout_seconds: float = DEFAULT_STORE_TIMEOUT_SECONDS

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.service_role_key)


@dataclass(frozen=True)
class WebhookTarget:
    """URL + shared secret pair; only active when both are present."""

    url: Optional[str] = None
    secret: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return bool(self.url and self.secret)


@dataclass(frozen=True)
class NotificationConfig:
    sync: WebhookTarget = field(default_factory=WebhookTarget)
    revalidate: WebhookTarget = field(default_factory=WebhookTarget)
    timeout_seconds: float = DEFAULT_NOTIFICATION_TIMEOUT_SECONDS


@dataclass(frozen=True)
class Settings:
    environment: str = DEFAULT_ENVIRONMENT
    store: StoreConfig = field(default_factory=StoreConfig)
    cors_origin: str = DEFAULT_CORS_ORIGIN
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    log_level: str = DEFAULT_LOG_LEVEL
    raw: dict[str, Any] = field(default_factory=dict)


def load_settings(
    profile: str | None = None,
    config_dir: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from the requested profile, then apply environment overrides."""

    env = os.environ if environ is None else environ
    profile_name = profile or env.get(CONFIG_PROFILE_ENV, DEFAULT_PROFILE)
    config_root = Path(
        config_dir or env.get(CONFIG_DIR_ENV, DEFAULT_CONFIG_ROOT)
    ).expanduser()
    config_data = _load_profile_dict(profile_name, config_root)
    if not config_data:
        config_data = copy.deepcopy(DEFAULT_PROFILE_DICT)

    store = _build_store_config(config_data.get("store") or {}, env)
    notifications = _build_notification_config(
        config_data.get("notifications") or {}, env
    )
    cors_cfg = config_data.get("cors") or {}
    logging_cfg = config_data.get("logging") or {}

    return Settings(
        environment=str(config_data.get("environment", DEFAULT_ENVIRONMENT)),
        store=store,
        cors_origin=_pick(env, CORS_ORIGIN_ENV, cors_cfg.get("origin"))
        or DEFAULT_CORS_ORIGIN,
        notifications=notifications,
        log_level=str(
            _pick(env, LOG_LEVEL_ENV, logging_cfg.get("level")) or DEFAULT_LOG_LEVEL
        ).upper(),
        raw=config_data,
    )


def _load_profile_dict(profile_name: str, config_root: Path) -> dict[str, Any]:
    """Load the YAML profile if available, otherwise return an empty dict."""

    if not config_root.exists():
        return {}

    for extension in CONFIG_EXTENSIONS:
        candidate = config_root / f"{profile_name}{extension}"
        if not candidate.exists():
            continue
        if yaml is None:
            warnings.warn(
                "PyYAML is not installed; falling back to built-in defaults for settings.",
                RuntimeWarning,
            )
            return {}
        try:
            with candidate.open("r", encoding="utf-8") as handle:
                loaded = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:  # type: ignore[attr-defined]
            raise RuntimeError(
                f"Failed to parse config profile {candidate}: {exc}"
            ) from exc
        if not isinstance(loaded, dict):
            raise RuntimeError(
                f"Config profile {candidate} must be a mapping at the root"
            )
        return loaded

    return {}


def _build_store_config(
    store_cfg: dict[str, Any], env: Mapping[str, str]
) -> StoreConfig:
    backend = str(
        _pick(env, STORE_BACKEND_ENV, store_cfg.get("backend")) or DEFAULT_STORE_BACKEND
    ).lower()
    if backend not in STORE_BACKENDS:
        raise RuntimeError(
            f"Unsupported store backend '{backend}'; expected one of {', '.join(STORE_BACKENDS)}"
        )
    return StoreConfig(
        url=_pick(env, STORE_URL_ENV, store_cfg.get("url")),
        service_role_key=_pick(env, STORE_KEY_ENV, store_cfg.get("service_role_key")),
        backend=backend,
        timeout_seconds=_as_float(
            _pick(env, STORE_TIMEOUT_ENV, store_cfg.get("timeout_seconds")),
            DEFAULT_STORE_TIMEOUT_SECONDS,
        ),
    )


def _build_notification_config(
    notifications_cfg: dict[str, Any], env: Mapping[str, str]
) -> NotificationConfig:
    sync_cfg = notifications_cfg.get("sync") or {}
    revalidate_cfg = notifications_cfg.get("revalidate") or {}
    return NotificationConfig(
        sync=WebhookTarget(
            url=_pick(env, SYNC_WEBHOOK_URL_ENV, sync_cfg.get("url")),
            secret=_pick(env, SYNC_WEBHOOK_SECRET_ENV, sync_cfg.get("secret")),
        ),
        revalidate=WebhookTarget(
            url=_pick(env, REVALIDATE_URL_ENV, revalidate_cfg.get("url")),
            secret=_pick(env, REVALIDATE_SECRET_ENV, revalidate_cfg.get("secret")),
        ),
        timeout_seconds=_as_float(
            _pick(env, NOTIFICATION_TIMEOUT_ENV, notifications_cfg.get("timeout_seconds")),
            DEFAULT_NOTIFICATION_TIMEOUT_SECONDS,
        ),
    )


def _pick(env: Mapping[str, str], name: str, fallback: Any = None) -> Optional[str]:
    """Return the env override, else the profile value; empty strings count as unset."""

    value = env.get(name)
    if value is None or not value.strip():
        value = fallback
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _as_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError as exc:
        raise RuntimeError(f"Expected a number of seconds, got '{value}'") from exc
    if parsed <= 0:
        raise RuntimeError(f"Timeout must be positive, got '{value}'")
    return parsed
