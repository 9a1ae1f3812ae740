"""
Bottle installation service — package re-exports.

Each symbol lives in its single-responsibility module inside the
appropriate onion layer (domain → resolver → detection → execution →
orchestration)::

    from bottler.core.services.bottle_install import resolve_install_order, run_all
"""

# ── L1: Domain ──
from bottler.core.services.bottle_install.domain.cache_keys import (  # noqa: F401
    bottle_basename,
    cache_key,
)

# ── L2: Resolver ──
from bottler.core.services.bottle_install.resolver.dependency_order import (  # noqa: F401
    resolve_install_order,
)

# ── L3: Detection ──
from bottler.core.services.bottle_install.detection.platform import (  # noqa: F401
    PlatformInfo,
    detect_platform,
    resolve_platform,
)

# ── L4: Execution ──
from bottler.core.services.bottle_install.execution.artifact_cache import (  # noqa: F401
    ArtifactCache,
    CacheEntry,
)
from bottler.core.services.bottle_install.execution.download import (  # noqa: F401
    download_to_file,
)
from bottler.core.services.bottle_install.execution.fetch_task import (  # noqa: F401
    BottleFetcher,
)
from bottler.core.services.bottle_install.execution.stager import (  # noqa: F401
    stage_archive,
)

# ── L5: Orchestration ──
from bottler.core.services.bottle_install.orchestration.orchestrator import (  # noqa: F401
    RunReport,
    run_all,
)
from bottler.core.services.bottle_install.orchestration.pipeline import (  # noqa: F401
    BottlePipeline,
)
