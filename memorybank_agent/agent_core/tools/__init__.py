"""Tool protocol, base class, registry and built-in tools."""

from .base import BaseTool, ToolCapability
from .registry import ToolRegistry

__all__ = [
    "BaseTool",
    "ToolCapability",
    "ToolRegistry",
]
