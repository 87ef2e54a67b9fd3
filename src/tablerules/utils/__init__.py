"""Utility helpers."""

from .cells import cell_ref

__all__ = ["cell_ref"]
