"""
Core utilities and configuration for the Memory Bank agent.

This package provides the settings model and logging configuration shared by
the agent core.
"""

from memorybank_agent.core.config import Settings, settings
from memorybank_agent.core.logging_config import get_logger, setup_logging

__all__ = ["Settings", "settings", "get_logger", "setup_logging"]
