"""
Notekeep - a note collection manager for a personal note-taking store.
This package keeps note metadata, note bodies and the tag, color and
notebook indexes consistent with each other on top of a generic item store.

All collection operations are asynchronous.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("notekeep")
except PackageNotFoundError:
    __version__ = "0.3.0"
