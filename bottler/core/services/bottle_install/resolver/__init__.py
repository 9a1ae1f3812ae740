"""
L2 Resolver — ``__init__.py`` re-exports all resolver functions.

These functions turn a repository plus a request into a concrete,
dependency-respecting install order.  No network, no filesystem.
"""

from bottler.core.services.bottle_install.resolver.dependency_order import (  # noqa: F401
    resolve_install_order,
)
