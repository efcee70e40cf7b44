"""Deterministic post-run reflection."""

from .engine import ReflectionEngine

__all__ = ["ReflectionEngine"]
