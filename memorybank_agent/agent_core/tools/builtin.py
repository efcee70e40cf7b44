from __future__ import annotations

"""Minimal built-in tools.

These are the default capabilities loaded at startup. They are deliberately
thin: file access through ``pathlib`` and shell commands through
``asyncio`` subprocesses. Richer tools (test generation, code analysis,
error fixing) are registered by the host application.
"""

import asyncio
import logging
import shlex
from pathlib import Path
from typing import Any, Dict

from ..errors import ErrorKind, ToolError
from ..schemas.domain import ToolParameter
from .base import BaseTool

logger = logging.getLogger(__name__)


class ReadFileTool(BaseTool):
    """Read a UTF-8 text file."""

    name = "ReadFileTool"
    description = "Read the content of a file. Returns {content, path}."
    parameters = {
        "path": ToolParameter(type="string", description="Path of the file to read", required=True),
    }

    async def run_impl(self, params: Dict[str, Any]) -> Dict[str, Any]:
        path = Path(str(params["path"]))
        try:
            content = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError as exc:
            raise ToolError(f"File not found: {path}", kind=ErrorKind.permanent) from exc
        return {"content": content, "path": str(path)}


class WriteFileTool(BaseTool):
    """Write text to a file, creating parent directories."""

    name = "WriteFileTool"
    description = "Write content to a file, creating it if needed. Returns {path, bytesWritten}."
    parameters = {
        "path": ToolParameter(type="string", description="Destination file path", required=True),
        "content": ToolParameter(type="string", description="Text to write", required=True),
    }

    async def run_impl(self, params: Dict[str, Any]) -> Dict[str, Any]:
        path = Path(str(params["path"]))
        content = str(params["content"])

        def _write() -> int:
            path.parent.mkdir(parents=True, exist_ok=True)
            return path.write_text(content, encoding="utf-8")

        written = await asyncio.to_thread(_write)
        return {"path": str(path), "bytesWritten": written}


class FindFileTool(BaseTool):
    """Find files by glob pattern relative to a root directory."""

    name = "FindFileTool"
    description = (
        "Find files matching a glob pattern. Use recursive patterns such as '**/*name*'. "
        "Returns {matches, pattern, found}."
    )
    parameters = {
        "pattern": ToolParameter(type="string", description="Glob pattern", required=True),
        "maxResults": ToolParameter(type="number", description="Maximum number of matches", default=5),
        "rootDirectory": ToolParameter(type="string", description="Directory to search from", default="."),
    }

    async def run_impl(self, params: Dict[str, Any]) -> Dict[str, Any]:
        pattern = str(params["pattern"])
        limit = int(params["maxResults"])
        root = Path(str(params["rootDirectory"]))

        def _find() -> list[str]:
            matches: list[str] = []
            for candidate in sorted(root.glob(pattern)):
                if candidate.is_file():
                    matches.append(str(candidate))
                if len(matches) >= limit:
                    break
            return matches

        matches = await asyncio.to_thread(_find)
        return {"matches": matches, "pattern": pattern, "found": len(matches) > 0}


class ExecuteCommandTool(BaseTool):
    """Run a shell command with its own deadline.

    A timeout is reported as a transient failure so the engine retries it
    once; a non-zero exit status is permanent.
    """

    name = "ExecuteCommandTool"
    description = "Execute a shell command. Returns {stdout, stderr, exitCode, command}."
    parameters = {
        "command": ToolParameter(type="string", description="Command line to execute", required=True),
        "workingDirectory": ToolParameter(type="string", description="Working directory for the command"),
        "timeout": ToolParameter(type="number", description="Timeout in milliseconds", default=60000),
        "allowedCommands": ToolParameter(type="array", description="Optional allow-list of executables"),
    }

    async def run_impl(self, params: Dict[str, Any]) -> Dict[str, Any]:
        command = str(params["command"]).strip()
        allowed = params.get("allowedCommands")
        if allowed:
            executable = shlex.split(command)[0] if command else ""
            if executable not in allowed:
                raise ToolError(f"Command not allowed: {executable}", kind=ErrorKind.invalid_params)

        timeout_s = float(params["timeout"]) / 1000.0
        proc = await asyncio.create_subprocess_shell(
            command,
            cwd=params.get("workingDirectory") or None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout_s)
        except asyncio.TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise ToolError(
                f"Command timeout after {int(timeout_s * 1000)}ms: {command}", kind=ErrorKind.transient
            ) from exc

        out = stdout.decode("utf-8", errors="replace")
        err = stderr.decode("utf-8", errors="replace")
        logger.debug(f"Command '{command}' exited with {proc.returncode}")
        if proc.returncode != 0:
            raise ToolError(
                f"Command failed with exit code {proc.returncode}: {err.strip() or out.strip()}",
                kind=ErrorKind.permanent,
            )
        return {"stdout": out, "stderr": err, "exitCode": proc.returncode, "command": command}
