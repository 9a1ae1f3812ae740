"""
L5 Orchestration — ``__init__.py`` re-exports all orchestration functions.

These tie the lower layers together: one pipeline per package, and a
bounded pool running the pipelines for a whole install order.
"""

from bottler.core.services.bottle_install.orchestration.orchestrator import (  # noqa: F401
    RunReport,
    Runner,
    run_all,
)
from bottler.core.services.bottle_install.orchestration.pipeline import (  # noqa: F401
    BottlePipeline,
)
