"""Poster Wall library indexer.

Discovers media files on a network share, classifies them into movies and
TV episodes, resolves posters and synopses from TMDb, and keeps a persistent
index fresh for the poster-wall front end.
"""

try:
    # Try to get version from setuptools_scm (when installed from git)
    from ._version import version as __version__
except ImportError:
    __version__ = "0.1.0-dev"
