"""
L4 Execution — ``__init__.py`` re-exports all execution functions.

These functions WRITE to the system: cache files, partial downloads,
staging directories.  They also own every network call of the fetch
path.
"""

from bottler.core.services.bottle_install.execution.artifact_cache import (  # noqa: F401
    ArtifactCache,
    CacheEntry,
    file_sha256,
)
from bottler.core.services.bottle_install.execution.download import (  # noqa: F401
    download_to_file,
)
from bottler.core.services.bottle_install.execution.fetch_task import (  # noqa: F401
    RETRYABLE_ERRORS,
    BottleFetcher,
)
from bottler.core.services.bottle_install.execution.stager import (  # noqa: F401
    GZIP_MAGIC,
    stage_archive,
    staging_dir_name,
)
