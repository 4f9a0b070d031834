# lawvote_node/config.py
import logging
import os
from typing import Any, Dict, List, Optional

import yaml

from .lawvote_runtime.atomic_store import AtomicLedgerStore
from .lawvote_runtime.errors import ConfigurationError
from .lawvote_runtime.models import GovParams

CONFIG_FILENAME = "lawvote_config.yaml"

# -------- Defaults --------
_DEFAULT: Dict[str, Any] = {
    "governance": {
        "base_token_name": "vote",
        "initial_holders": [],
        "required_votes": 1,
        # optional cross-check against len(initial_holders)
        "token_count": None,
    },
    "session": {"max_attempts": 5, "operator": "operator"},
    "persistence": {
        "driver": "memory",  # memory | json
        "data_dir": "data",
        "filename": "lawvote_ledger.json",
        "keep_backups": 2,
    },
    "security": {"require_signed_tx": False},
    "logging": {"level": "INFO"},
    "server": {"host": "0.0.0.0", "port": 8000},
}


def _csv(val: str) -> List[str]:
    return [x.strip() for x in val.split(",") if x.strip()]


def _bool(val: str) -> bool:
    return val.strip().lower() in {"1", "true", "yes", "on"}


# -------- ENV overrides --------
_ENV_MAP = {
    ("governance", "base_token_name"): ("LAWVOTE_BASE_TOKEN_NAME", str),
    ("governance", "initial_holders"): ("LAWVOTE_INITIAL_HOLDERS", _csv),
    ("governance", "required_votes"): ("LAWVOTE_REQUIRED_VOTES", int),
    ("session", "max_attempts"): ("LAWVOTE_MAX_ATTEMPTS", int),
    ("persistence", "driver"): ("LAWVOTE_PERSISTENCE", str),
    ("persistence", "data_dir"): ("LAWVOTE_DATA_DIR", str),
    ("security", "require_signed_tx"): ("LAWVOTE_REQUIRE_SIGNED_TX", _bool),
    ("logging", "level"): ("LAWVOTE_LOG_LEVEL", str),
}


def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in (overlay or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    for (section, key), (env_name, cast) in _ENV_MAP.items():
        val = os.getenv(env_name)
        if val is None:
            continue
        try:
            casted = cast(val)
        except ValueError as e:
            raise ConfigurationError(f"{env_name}: {e}") from e
        cfg.setdefault(section, {})
        cfg[section][key] = casted
    return cfg


def load_config(repo_root: str, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Loads repo_root/lawvote_config.yaml on top of the defaults, then `overrides`,
    then ENV. A missing file means defaults; an unparsable one is a
    ConfigurationError, since no governance instance may start from it.
    """
    path = os.path.join(repo_root, CONFIG_FILENAME)
    cfg = _deep_merge({}, _DEFAULT)

    if os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"{path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path}: top level must be a mapping")
        cfg = _deep_merge(cfg, data)

    if overrides:
        cfg = _deep_merge(cfg, overrides)

    return _apply_env_overrides(cfg)


# -------- Instance parameters --------
def params_from_config(cfg: Dict[str, Any]) -> GovParams:
    gov = cfg.get("governance") or {}

    base = gov.get("base_token_name")
    if not isinstance(base, str) or not base.strip():
        raise ConfigurationError("governance.base_token_name must be a non-empty string")

    holders = gov.get("initial_holders")
    if not isinstance(holders, list) or not holders:
        raise ConfigurationError("governance.initial_holders must be a non-empty list")
    holders = [str(h).strip() for h in holders]
    if any(not h for h in holders):
        raise ConfigurationError("governance.initial_holders contains an empty holder id")
    if len(set(holders)) != len(holders):
        raise ConfigurationError("governance.initial_holders contains duplicates")

    required = gov.get("required_votes")
    if isinstance(required, bool) or not isinstance(required, int):
        raise ConfigurationError("governance.required_votes must be an integer")
    if required < 0:
        raise ConfigurationError("governance.required_votes must be >= 0")

    token_count = gov.get("token_count")
    if token_count is not None and (not isinstance(token_count, int) or token_count != len(holders)):
        raise ConfigurationError(
            f"governance.token_count={token_count} does not match {len(holders)} initial holders"
        )

    return GovParams(base_token_name=base, initial_holders=tuple(holders), required_votes=required)


# -------- Small helpers used by the app --------
def get_max_attempts(cfg: Dict[str, Any]) -> int:
    return int(cfg.get("session", {}).get("max_attempts", 5))


def get_operator(cfg: Dict[str, Any]) -> str:
    return str(cfg.get("session", {}).get("operator", "operator"))


def get_require_signed(cfg: Dict[str, Any]) -> bool:
    return bool(cfg.get("security", {}).get("require_signed_tx", False))


def get_bind_host(cfg: Dict[str, Any]) -> str:
    return str(cfg.get("server", {}).get("host", "0.0.0.0"))


def get_bind_port(cfg: Dict[str, Any]) -> int:
    return int(cfg.get("server", {}).get("port", 8000))


def build_store(cfg: Dict[str, Any]) -> Optional[AtomicLedgerStore]:
    p = cfg.get("persistence", {})
    driver = str(p.get("driver", "memory")).lower()
    if driver == "memory":
        return None
    if driver != "json":
        raise ConfigurationError(f"persistence.driver {driver!r} is not one of: memory, json")
    return AtomicLedgerStore(
        p.get("data_dir", "data"),
        filename=str(p.get("filename", "lawvote_ledger.json")),
        keep_backups=int(p.get("keep_backups", 2)),
    )


def configure_logging(cfg: Dict[str, Any]) -> None:
    level_name = str(cfg.get("logging", {}).get("level", "INFO")).upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        raise ConfigurationError(f"logging.level {level_name!r} is not a logging level")
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s")
    root.setLevel(level)
