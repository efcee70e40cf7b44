"""
Configuration Settings.

This module defines the agent configuration using Pydantic's BaseSettings.
Values are read from ``MEMORYBANK_AGENT_*`` environment variables and an
optional ``.env`` file.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TOOL_PATHS: List[str] = [
    "memorybank_agent.agent_core.tools.builtin.ReadFileTool",
    "memorybank_agent.agent_core.tools.builtin.WriteFileTool",
    "memorybank_agent.agent_core.tools.builtin.FindFileTool",
    "memorybank_agent.agent_core.tools.builtin.ExecuteCommandTool",
]


class Settings(BaseSettings):
    """
    Agent settings model.

    All properties are bound from environment variables and the .env file.
    Fields may also be passed by name when constructing the model directly.
    """

    # =====================================================================
    # Pydantic Configuration
    # =====================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Logging Configuration
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="MEMORYBANK_AGENT_LOG_LEVEL",
    )
    log_format: str = Field(
        default="detailed",
        description="Log line format (simple, detailed, json)",
        alias="MEMORYBANK_AGENT_LOG_FORMAT",
    )
    enable_file_logging: bool = Field(
        default=False,
        description="Also write logs to <log_file_dir>/memorybank_agent.log",
        alias="MEMORYBANK_AGENT_ENABLE_FILE_LOGGING",
    )
    log_file_dir: str = Field(
        default="logs",
        description="Directory for the log file",
        alias="MEMORYBANK_AGENT_LOG_FILE_DIR",
    )

    # =====================================================================
    # Context Store Configuration
    # =====================================================================
    max_context_tokens: int = Field(
        default=16000,
        gt=0,
        description="Soft token budget of the context store",
        alias="MEMORYBANK_AGENT_MAX_CONTEXT_TOKENS",
    )
    persist_threshold: float = Field(
        default=0.9,
        gt=0,
        le=1,
        description="Fraction of the token budget that triggers an automatic snapshot",
        alias="MEMORYBANK_AGENT_PERSIST_THRESHOLD",
    )
    storage_dir: str = Field(
        default=".memorybank",
        description="Root directory for context snapshots",
        alias="MEMORYBANK_AGENT_STORAGE_DIR",
    )

    # =====================================================================
    # Persistence Configuration
    # =====================================================================
    database_url: Optional[str] = Field(
        default=None,
        description="Async SQLAlchemy URL for the event log; in-memory log when unset",
        alias="MEMORYBANK_AGENT_DATABASE_URL",
    )

    # =====================================================================
    # Planning / Execution Configuration
    # =====================================================================
    planner_model: Optional[str] = Field(
        default=None,
        description="pydantic-ai model name used by the planner (e.g. 'openai:gpt-4o')",
        alias="MEMORYBANK_AGENT_PLANNER_MODEL",
    )
    fallback_tool: str = Field(
        default="ExecuteCommandTool",
        description="Tool invoked by the single-step fallback plan",
        alias="MEMORYBANK_AGENT_FALLBACK_TOOL",
    )
    stop_on_critical_failure: bool = Field(
        default=False,
        description="Halt the run when a critical step fails terminally",
        alias="MEMORYBANK_AGENT_STOP_ON_CRITICAL_FAILURE",
    )
    default_tools: List[str] = Field(
        default_factory=lambda: list(DEFAULT_TOOL_PATHS),
        description="Dotted import paths of the capabilities loaded at startup",
        alias="MEMORYBANK_AGENT_DEFAULT_TOOLS",
    )


settings = Settings()
