"""Subprocess-based runner for the external demo analysis executable."""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import time
from pathlib import Path

from demo_ingest.clients.base import AnalysisResult
from demo_ingest.orchestrator.errors import AnalysisError

logger = logging.getLogger(__name__)

_STDERR_EXCERPT_CHARS = 400
_TERMINATE_GRACE_SECONDS = 2


class SubprocessAnalysisRunner:
    """Invoke ``<executable> -q -i <artifact>`` and capture stdout as the result document."""

    def __init__(self, executable: str, *, cwd: Path | None = None) -> None:
        self.executable = executable
        self.cwd = cwd

    def build_args(self, artifact_path: Path, os_name: str | None = None) -> list[str]:
        stripped = self.executable.strip()
        if not stripped:
            raise AnalysisError("Analysis executable is not configured.")
        if Path(stripped).is_file() or shutil.which(stripped):
            # An existing path is used whole, even when it contains spaces.
            return [stripped, "-q", "-i", str(artifact_path)]
        current_os_name = os_name or os.name
        head = shlex.split(stripped, posix=current_os_name != "nt")
        if not head:
            raise AnalysisError("Analysis executable rendered empty command.")
        return [*head, "-q", "-i", str(artifact_path)]

    def run(self, artifact_path: Path, timeout_seconds: float) -> AnalysisResult:
        run_args = self.build_args(artifact_path)
        started = time.monotonic()
        try:
            process = subprocess.Popen(  # noqa: S603
                run_args,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=self.cwd,
            )
        except FileNotFoundError as error:
            raise AnalysisError(f"Analysis executable not found: {run_args[0]}") from error
        except OSError as error:
            raise AnalysisError(f"Analysis executable failed to start: {error}") from error

        try:
            stdout, stderr = process.communicate(timeout=timeout_seconds)
        except subprocess.TimeoutExpired as error:
            _terminate_process(process)
            raise AnalysisError(
                f"Analysis timed out after {timeout_seconds:g}s: {artifact_path.name}",
                timed_out=True,
            ) from error

        duration = time.monotonic() - started
        if process.returncode != 0:
            raise AnalysisError(
                f"Analysis exited with code {process.returncode}: "
                f"{_excerpt(stderr) or '<no stderr>'}",
            )

        logger.debug("Analysis of %s finished in %.2fs", artifact_path.name, duration)
        return AnalysisResult(
            stdout=stdout.decode("utf-8", errors="replace"),
            exit_code=process.returncode,
            duration_seconds=duration,
        )


def _excerpt(stderr: bytes | None) -> str:
    if not stderr:
        return ""
    text = stderr.decode("utf-8", errors="replace").strip()
    if len(text) > _STDERR_EXCERPT_CHARS:
        return "..." + text[-_STDERR_EXCERPT_CHARS:]
    return text


def _terminate_process(process: subprocess.Popen[bytes]) -> None:
    try:
        process.terminate()
    except OSError:
        return
    try:
        process.communicate(timeout=_TERMINATE_GRACE_SECONDS)
    except subprocess.TimeoutExpired:
        try:
            process.kill()
        except OSError:
            return
        process.communicate(timeout=_TERMINATE_GRACE_SECONDS)
