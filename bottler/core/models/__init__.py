"""
Domain models — Pydantic types for the install core.

All models are re-exported here for convenient access:

    from bottler.core.models import PackageRecord, Repository, Settings
"""

from bottler.core.models.formula import BottleRef, PackageRecord, Repository
from bottler.core.models.settings import Settings

__all__ = [
    # formula.py
    "BottleRef",
    "PackageRecord",
    "Repository",
    # settings.py
    "Settings",
]
