"""Per-job local file layout for transient raw artifacts and result documents."""

from __future__ import annotations

import shutil
from pathlib import Path

RAW_DIR_NAME = "demo"
RESULT_DIR_NAME = "json"


class WorkdirLayout:
    """Creates the working directory and namespaces every path by job id."""

    def __init__(self, root_dir: Path) -> None:
        self.root_dir = root_dir
        self.raw_dir = root_dir / RAW_DIR_NAME
        self.result_dir = root_dir / RESULT_DIR_NAME

    def reset(self) -> None:
        """Wipe and recreate the layout; called once at process start."""

        if self.root_dir.exists():
            shutil.rmtree(self.root_dir)
        self.ensure()

    def ensure(self) -> None:
        self.raw_dir.mkdir(parents=True, exist_ok=True)
        self.result_dir.mkdir(parents=True, exist_ok=True)

    def raw_path(self, job_id: str, extension: str = ".dem") -> Path:
        return self.raw_dir / f"{_safe_name(job_id)}{extension}"

    def result_path(self, job_id: str) -> Path:
        return self.result_dir / f"{_safe_name(job_id)}.json"


def _safe_name(job_id: str) -> str:
    if not job_id or job_id in {".", ".."} or "/" in job_id or "\\" in job_id or "\0" in job_id:
        raise ValueError(f"Job id cannot be used as a file name: {job_id!r}")
    return job_id
