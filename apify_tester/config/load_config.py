from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any


class ConfigError(RuntimeError):
    pass


def _as_int(value: Any, *, key: str) -> int:
    try:
        return int(value)
    except Exception as e:
        raise ConfigError(f"Invalid int for {key}: {value!r}") from e


def _as_str(value: Any, *, key: str) -> str:
    if value is None:
        raise ConfigError(f"Missing required config key: {key}")
    return str(value)


def _as_float(value: Any, *, key: str) -> float:
    try:
        return float(value)
    except Exception as e:
        raise ConfigError(f"Invalid float for {key}: {value!r}") from e


def _require_positive(value: float, *, key: str) -> float:
    if value <= 0:
        raise ConfigError(f"Invalid {key}: must be > 0, got {value!r}")
    return value


def _resolve_path(
    value: Any, *, key: str, base_dir: Path, fallback_base_dirs: list[Path] | None = None
) -> Path:
    raw = _as_str(value, key=key)
    p = Path(raw).expanduser()
    if not p.is_absolute():
        candidates = [base_dir]
        if fallback_base_dirs:
            candidates.extend(fallback_base_dirs)
        # As a last resort, interpret relative paths against current working directory.
        candidates.append(Path.cwd())

        resolved: Path | None = None
        for b in candidates:
            candidate = (b / p).resolve()
            if candidate.exists():
                resolved = candidate
                break
        p = resolved or (base_dir / p).resolve()
    else:
        p = p.resolve()
    return p


@dataclass(frozen=True)
class ApifyConfig:
    scheme: str
    hostname: str
    api_prefix: str
    timeout_s: float
    token_env: str


@dataclass(frozen=True)
class CatalogConfig:
    path: str


@dataclass(frozen=True)
class PollingConfig:
    """Client-driven polling of a run's status until it is terminal."""

    interval_s: float
    max_polls: int
    deadline_s: float


@dataclass(frozen=True)
class AppConfig:
    apify: ApifyConfig
    catalog: CatalogConfig
    polling: PollingConfig

    def api_token(self) -> str | None:
        """Credential for the remote API, read from the process environment only."""
        raw = os.getenv(self.apify.token_env) or os.getenv("APIFY_TOKEN")
        token = (raw or "").strip()
        return token or None


def default_config_path() -> Path:
    return Path(os.getenv("APIFY_TESTER_CONFIG_PATH", "config/default.toml")).expanduser().resolve()


def load_app_config(path: Path | None = None) -> AppConfig:
    cfg_path = path or default_config_path()
    if not cfg_path.exists():
        raise ConfigError(f"Config file not found: {cfg_path}")

    import tomllib

    try:
        raw = tomllib.loads(cfg_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {cfg_path}: {e}") from e

    apify = raw.get("apify", {})
    catalog = raw.get("catalog", {})
    polling = raw.get("polling", {})

    base_dir = cfg_path.parent
    # Common case: config lives in `<repo>/config/default.toml`, the catalog in `<repo>/data/...`.
    fallback_base_dirs = [base_dir.parent]
    catalog_path = _resolve_path(
        catalog.get("path"),
        key="catalog.path",
        base_dir=base_dir,
        fallback_base_dirs=fallback_base_dirs,
    )

    api_prefix = _as_str(apify.get("api_prefix", "/v2"), key="apify.api_prefix").strip().rstrip("/")
    if api_prefix and not api_prefix.startswith("/"):
        api_prefix = "/" + api_prefix

    return AppConfig(
        apify=ApifyConfig(
            scheme=_as_str(apify.get("scheme", "https"), key="apify.scheme"),
            hostname=_as_str(apify.get("hostname"), key="apify.hostname").strip(),
            api_prefix=api_prefix,
            timeout_s=_require_positive(
                _as_float(apify.get("timeout_s", 30.0), key="apify.timeout_s"), key="apify.timeout_s"
            ),
            token_env=_as_str(apify.get("token_env", "APIFY_API_KEY"), key="apify.token_env"),
        ),
        catalog=CatalogConfig(
            # A missing catalog file is not fatal: the app starts with an empty catalog.
            path=str(catalog_path),
        ),
        polling=PollingConfig(
            interval_s=_require_positive(
                _as_float(polling.get("interval_s"), key="polling.interval_s"), key="polling.interval_s"
            ),
            max_polls=int(
                _require_positive(_as_int(polling.get("max_polls"), key="polling.max_polls"), key="polling.max_polls")
            ),
            deadline_s=_require_positive(
                _as_float(polling.get("deadline_s"), key="polling.deadline_s"), key="polling.deadline_s"
            ),
        ),
    )
