"""
bottler — installation core of a Homebrew-style binary package manager.
"""

__version__ = "0.1.0"
