"""
Artifact Sinks

Where finished artifacts go. FileSystemSink writes to a temporary file in
the target directory and renames it into place, so a failed write never
leaves a half-written artifact behind. MemorySink keeps artifacts in
memory for callers that stream them back themselves (the HTTP API).
"""

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Protocol, Union

from roadmap_export.utils.error_handling import SaveError

logger = logging.getLogger(__name__)


class ArtifactSink(Protocol):
    async def save(self, filename: str, data: bytes) -> str:
        """Persist ``data`` and return its location."""
        ...


class FileSystemSink:
    """Writes artifacts atomically into ``output_dir``."""

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)

    async def save(self, filename: str, data: bytes) -> str:
        target = self.output_dir / filename
        await asyncio.to_thread(self._write, target, data)
        logger.info(f"Saved {filename} ({len(data)} bytes) to {self.output_dir}")
        return str(target)

    def _write(self, target: Path, data: bytes) -> None:
        """Blocking temp-file write and rename; runs in a worker thread."""
        tmp_path = None
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".partial-", dir=self.output_dir)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, target)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise SaveError(f"Could not write {target}: {e}") from e


class MemorySink:
    """Keeps artifacts in a dict keyed by filename."""

    def __init__(self):
        self.artifacts: Dict[str, bytes] = {}

    async def save(self, filename: str, data: bytes) -> str:
        self.artifacts[filename] = data
        return f"memory://{filename}"
