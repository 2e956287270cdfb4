"""
Per-service strategies.

`strategy_for` returns the concrete strategy for a service; use cases only
depend on the capability protocols in `strategy.base`.
"""

from __future__ import annotations

from typing import Any, Optional

from state.models import Service

from .base import FullStrategy
from .param import ParamStrategy
from .secret import SecretStrategy


def strategy_for(service: Service | str, *, client: Optional[Any] = None, region_name: Optional[str] = None) -> FullStrategy:
    svc = Service.parse(service)
    if svc is Service.PARAM:
        return ParamStrategy(ssm=client, region_name=region_name)
    return SecretStrategy(secretsmanager=client, region_name=region_name)


__all__ = ["strategy_for", "ParamStrategy", "SecretStrategy"]
