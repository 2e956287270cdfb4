from __future__ import annotations

import logging
from pathlib import Path

import pytest

from common import config


def test_load_settings_defaults(monkeypatch):
    monkeypatch.delenv("CLOUDSTAGE_HOME", raising=False)
    monkeypatch.delenv("CLOUDSTAGE_LOG_LEVEL", raising=False)
    monkeypatch.delenv("AWS_REGION", raising=False)
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-west-2")
    s = config.load_settings()
    assert s.home == Path.home() / ".cloudstage"
    assert s.log_level == "WARNING"
    assert s.region == "us-west-2"
    assert s.passphrase is None


def test_empty_env_values_are_ignored(monkeypatch):
    monkeypatch.setenv("CLOUDSTAGE_PASSPHRASE", "")
    assert config.load_settings().passphrase is None


def test_resolve_scope_requires_region(monkeypatch):
    monkeypatch.delenv("AWS_REGION", raising=False)
    monkeypatch.delenv("AWS_DEFAULT_REGION", raising=False)
    with pytest.raises(RuntimeError, match="Missing required configuration"):
        config.resolve_scope(sts=object())


def test_configure_logging_sets_level():
    config.configure_logging("debug")
    assert logging.getLogger().level == logging.DEBUG
    with pytest.raises(RuntimeError):
        config.configure_logging("loud")
    config.configure_logging("warning")
