"""
L1 Domain — Download helpers (pure).

Size formatting for progress output.
No I/O, no subprocess.
"""

from __future__ import annotations


def _fmt_size(n: int | float) -> str:
    """Format byte count to human-readable string."""
    for unit in ("B", "KB", "MB", "GB"):
        if n < 1024:
            return f"{n:.1f} {unit}"
        n /= 1024
    return f"{n:.1f} TB"


def _fmt_progress(transferred: int, total: int) -> str:
    """``"1.2 MB / 4.0 MB (30%)"`` or just the transferred size when total is unknown."""
    if total <= 0:
        return _fmt_size(transferred)
    pct = min(100, int(transferred * 100 / total))
    return f"{_fmt_size(transferred)} / {_fmt_size(total)} ({pct}%)"
