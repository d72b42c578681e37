import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .errors import ConfigError

DEFAULT_RPC_URL = "http://127.0.0.1:8545"
DEFAULT_ARTIFACTS = "build/contracts"
DEFAULT_GAS_LIMIT = 8_000_000
DEFAULT_RECEIPT_TIMEOUT = 120.0
DEFAULT_REQUEST_TIMEOUT = 30.0

_ENV_KEYS = {
    "rpc_url": "RPADMIN_RPC_URL",
    "network_id": "RPADMIN_NETWORK_ID",
    "artifacts": "RPADMIN_ARTIFACTS",
    "from_address": "RPADMIN_FROM",
    "private_key": "RPADMIN_PRIVATE_KEY",
}


def config_dir() -> Path:
    return Path.home() / ".rpadmin"


def _config_path() -> Path:
    override = os.environ.get("RPADMIN_CONFIG")
    if override:
        return Path(override).expanduser()
    return config_dir() / "config.json"


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    path = path or _config_path()
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"cannot read config {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must contain a JSON object")
    return data


def write_default_config(overwrite: bool = False, path: Optional[Path] = None) -> Path:
    if path is None:
        path = _config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists() and not overwrite:
        return path

    default = {
        "rpc_url": DEFAULT_RPC_URL,
        "network_id": "",
        "artifacts": DEFAULT_ARTIFACTS,
        "from_address": "",
        "private_key": "",
        "gas_limit": DEFAULT_GAS_LIMIT,
        "receipt_timeout": DEFAULT_RECEIPT_TIMEOUT,
        "request_timeout": DEFAULT_REQUEST_TIMEOUT,
        "audit_log": True,
    }
    path.write_text(json.dumps(default, indent=2) + "\n", encoding="utf-8")

    # The file may hold a private key.
    try:
        os.chmod(path, 0o600)
    except OSError:
        pass

    return path


@dataclass(frozen=True)
class AdminConfig:
    """Settings for a single dispatch run."""

    rpc_url: str = DEFAULT_RPC_URL
    network_id: Optional[str] = None
    artifacts: str = DEFAULT_ARTIFACTS
    from_address: Optional[str] = None
    private_key: Optional[str] = None
    gas_limit: int = DEFAULT_GAS_LIMIT
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    audit_log: bool = True

    def with_overrides(self, **overrides: Any) -> "AdminConfig":
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self


_NUMERIC_KEYS = {"gas_limit": int, "receipt_timeout": float, "request_timeout": float}


def _as_number(raw: Any, key: str, kind: type) -> Any:
    try:
        value = kind(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"config key {key!r} must be a number, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"config key {key!r} must be positive")
    return value


def build_config(
    raw: Optional[Dict[str, Any]] = None,
    env: Optional[Dict[str, str]] = None,
    **overrides: Any,
) -> AdminConfig:
    """Merge file values, environment variables and CLI overrides, in that order."""
    raw = dict(raw or {})
    env = os.environ if env is None else env
    for key, var in _ENV_KEYS.items():
        if env.get(var):
            raw[key] = env[var]

    cfg = AdminConfig(
        rpc_url=str(raw.get("rpc_url") or DEFAULT_RPC_URL),
        network_id=str(raw["network_id"]) if raw.get("network_id") else None,
        artifacts=str(raw.get("artifacts") or DEFAULT_ARTIFACTS),
        from_address=raw.get("from_address") or None,
        private_key=raw.get("private_key") or None,
        gas_limit=_as_number(raw.get("gas_limit", DEFAULT_GAS_LIMIT), "gas_limit", int),
        receipt_timeout=_as_number(raw.get("receipt_timeout", DEFAULT_RECEIPT_TIMEOUT), "receipt_timeout", float),
        request_timeout=_as_number(raw.get("request_timeout", DEFAULT_REQUEST_TIMEOUT), "request_timeout", float),
        audit_log=bool(raw.get("audit_log", True)),
    )
    # Flag values get the same checks as file and environment values.
    for key, kind in _NUMERIC_KEYS.items():
        if overrides.get(key) is not None:
            overrides[key] = _as_number(overrides[key], key, kind)
    return cfg.with_overrides(**overrides)


def load_environment(dotenv_path: Optional[Path] = None) -> None:
    """Pull RPADMIN_* variables from a .env file without clobbering the real environment."""
    load_dotenv(dotenv_path=dotenv_path or Path(".env"), override=False)
