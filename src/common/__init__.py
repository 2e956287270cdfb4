"""
Common utilities for cloudstage.

Modules:
- config: environment-driven settings, logging setup and scope resolution
- maputil: deterministic (name-sorted) iteration over staged maps
- cancel: cooperative cancellation checks for long-running use cases
"""

__all__ = [
    "config",
    "maputil",
    "cancel",
]
