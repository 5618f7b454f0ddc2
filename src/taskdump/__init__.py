# src/taskdump/__init__.py

"""Free-text task capture with a local cache, optional remote sync and daily carry-over."""

__version__ = "0.1.0"
