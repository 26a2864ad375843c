"""Child process execution for sandbox scripts and tools."""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .metadata_parser import MetadataError, validate_name


DEFAULT_TIMEOUT = 30.0


class ExecutionError(Exception):
    """The script or tool could not be run to completion."""
    pass


@dataclass
class ExecutionResult:
    """Captured output of one script/tool run."""
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0

    def render(self) -> str:
        """Format the result as a single text block for display."""
        parts = []
        if self.stdout:
            parts.append(self.stdout)
        if self.stderr:
            if parts:
                parts.append("\n")
            parts.append("[stderr]\n")
            parts.append(self.stderr)
        if self.exit_code != 0:
            parts.append(f"\n[exit code: {self.exit_code}]")
        return "".join(parts)

    def __str__(self) -> str:
        return self.render()


class Executor:
    """Runs scripts through the shell and tools through their toolchain."""

    def __init__(self, shell: str = "bash", tool_runners: Optional[Dict[str, List[str]]] = None,
                 timeout: Optional[float] = DEFAULT_TIMEOUT):
        self.shell = shell
        self.tool_runners = tool_runners if tool_runners is not None else {".go": ["go", "run"]}
        # 0 or None disables the timeout
        self.timeout = timeout or None
        self.logger = logging.getLogger("executor")

    def _resolve(self, directory: str, name: str, kind: str) -> Path:
        try:
            validate_name(name, kind)
        except MetadataError as e:
            raise ExecutionError(str(e))

        path = Path(directory) / name
        if not path.is_file():
            raise ExecutionError(f"{kind} not found: {name}")
        return path

    def run_script(self, directory: str, name: str, args: Sequence[str] = ()) -> ExecutionResult:
        """Run a shell script from ``directory``."""
        if not name.endswith(".sh"):
            raise ExecutionError(f"not a shell script: {name}")

        path = self._resolve(directory, name, "script")
        return self.run([self.shell, str(path), *args])

    def run_tool(self, directory: str, name: str, args: Sequence[str] = ()) -> ExecutionResult:
        """Build and run a single-file tool program from ``directory``."""
        runner = self.tool_runners.get(Path(name).suffix)
        if runner is None:
            supported = ", ".join(sorted(self.tool_runners)) or "none"
            raise ExecutionError(f"unsupported tool type: {name} (supported: {supported})")

        path = self._resolve(directory, name, "tool")
        return self.run([*runner, str(path), *args])

    def run(self, command: List[str]) -> ExecutionResult:
        """Run ``command`` to completion and capture its output.

        A non-zero exit status is returned in the result. Failing to start
        the process or exceeding the timeout raises ``ExecutionError``.
        """
        self.logger.info(f"Running: {command}")
        try:
            completed = subprocess.run(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            self.logger.warning(f"Timed out after {self.timeout:g}s: {command}")
            raise ExecutionError(f"execution timed out after {self.timeout:g}s")
        except OSError as e:
            self.logger.error(f"Failed to start {command[0]}: {e}")
            raise ExecutionError(f"execution error: {e}")

        self.logger.debug(f"Exit code {completed.returncode}: {command}")
        return ExecutionResult(
            stdout=completed.stdout,
            stderr=completed.stderr,
            exit_code=completed.returncode,
        )
