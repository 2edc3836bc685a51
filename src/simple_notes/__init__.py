"""
Simple Notes - a hierarchical note-taking store mirrored to disk.

Notes live in an in-memory tree of folders and files. Every structural change
is written through to an on-disk mirror and to a fast local cache, and content
edits are flushed after a short quiescence window.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("simple-notes")
except PackageNotFoundError:
    __version__ = "1.0.0"
