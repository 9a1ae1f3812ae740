"""
L1 Domain — ``__init__.py`` re-exports all pure domain functions.

These functions have NO subprocess calls, NO filesystem access,
NO network calls. Pure input→output.
"""

from bottler.core.services.bottle_install.domain.cache_keys import (  # noqa: F401
    BOTTLE_EXT,
    INCOMPLETE_SUFFIX,
    bottle_basename,
    cache_key,
    incomplete_name,
    url_digest,
)
from bottler.core.services.bottle_install.domain.download_helpers import (  # noqa: F401
    _fmt_progress,
    _fmt_size,
)
