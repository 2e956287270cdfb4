from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import boto3

from state.models import Scope


# Environment configuration
ENV_HOME = "CLOUDSTAGE_HOME"
ENV_PASSPHRASE = "CLOUDSTAGE_PASSPHRASE"
ENV_LOG_LEVEL = "CLOUDSTAGE_LOG_LEVEL"
ENV_REGION = "AWS_REGION"

# Fallbacks honoured by the AWS SDKs
FALLBACK_ENV_REGION = "AWS_DEFAULT_REGION"

DEFAULT_HOME_DIRNAME = ".cloudstage"
DEFAULT_LOG_LEVEL = "WARNING"

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.environ.get(name)
    return v if v not in (None, "") else default


def _require(v: Optional[str], what: str) -> str:
    if not v:
        raise RuntimeError(f"Missing required configuration: {what}")
    return v


@dataclass(frozen=True)
class Settings:
    home: Path
    passphrase: Optional[str]
    log_level: str
    region: Optional[str]


def default_home() -> Path:
    base = _getenv(ENV_HOME)
    if base:
        return Path(base).expanduser()
    return Path.home() / DEFAULT_HOME_DIRNAME


def load_settings() -> Settings:
    """Read settings from the environment.

    - `CLOUDSTAGE_HOME`: root directory for staging files (default `~/.cloudstage`)
    - `CLOUDSTAGE_PASSPHRASE`: passphrase used by drain/persist when none is given
    - `CLOUDSTAGE_LOG_LEVEL`: logging level name (default WARNING)
    - `AWS_REGION` / `AWS_DEFAULT_REGION`: region used for clients and scope
    """
    return Settings(
        home=default_home(),
        passphrase=_getenv(ENV_PASSPHRASE),
        log_level=(_getenv(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper(),
        region=_getenv(ENV_REGION) or _getenv(FALLBACK_ENV_REGION),
    )


def configure_logging(level: Optional[str] = None) -> None:
    """Install a root handler once; later calls only adjust the level."""
    name = (level or load_settings().log_level).upper()
    numeric = logging.getLevelName(name)
    if not isinstance(numeric, int):
        raise RuntimeError(f"Invalid log level: {name}")
    logging.basicConfig(level=numeric, format=_LOG_FORMAT)
    logging.getLogger().setLevel(numeric)


def resolve_scope(*, sts: Optional[object] = None, region_name: Optional[str] = None) -> Scope:
    """Build the identity scope from the caller's AWS account and region."""
    region = _require(region_name or load_settings().region, f"{ENV_REGION} or {FALLBACK_ENV_REGION}")
    client = sts or boto3.client("sts", region_name=region)
    ident = client.get_caller_identity()
    account = _require(ident.get("Account"), "AWS account id from sts:GetCallerIdentity")
    return Scope(account_id=account, region=region)


__all__ = [
    "ENV_HOME",
    "ENV_PASSPHRASE",
    "ENV_LOG_LEVEL",
    "ENV_REGION",
    "Settings",
    "default_home",
    "load_settings",
    "configure_logging",
    "resolve_scope",
]
