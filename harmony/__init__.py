"""Harmony: IDE project file generation for assembly-descriptor codebases."""

__version__ = "0.1.0"
