"""Annotation lint for Java sources: rule-based checks over a typed declaration model."""

__version__ = "0.1.0"
