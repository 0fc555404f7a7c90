"""Utility package for image stitcher."""

from . import validation

__all__ = ["validation"]
