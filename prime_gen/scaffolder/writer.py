"""All-or-nothing persistence of a rendered ``ArtifactSet``.

Files are first written to a staging directory next to the module directory,
then moved into place with ``os.replace``.  The previous content of every
replaced file is kept so the whole commit can be rolled back, e.g. when the
registry update that follows it fails.
"""

from __future__ import annotations

import asyncio
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .generator import ArtifactSet


@dataclass
class CommitRecord:
    """What a commit changed, with enough state to undo it."""

    module_dir: Path
    written: list[Path] = field(default_factory=list)
    previous: dict[Path, Optional[bytes]] = field(default_factory=dict)
    created_dir: bool = False

    def rollback(self) -> None:
        """Restore every touched file to its pre-commit state."""
        for path in reversed(self.written):
            before = self.previous.get(path)
            if before is None:
                path.unlink(missing_ok=True)
            else:
                path.write_bytes(before)
        if self.created_dir and self.module_dir.is_dir() and not any(self.module_dir.iterdir()):
            self.module_dir.rmdir()
        self.written.clear()


class ArtifactWriter:
    """Writes an ``ArtifactSet`` into its module directory."""

    def __init__(self, module_dir: str | Path) -> None:
        self.module_dir = Path(module_dir)

    async def commit(self, artifact_set: ArtifactSet) -> CommitRecord:
        """Stage and move every artifact into place without blocking the loop."""
        return await asyncio.to_thread(self.commit_sync, artifact_set)

    def commit_sync(self, artifact_set: ArtifactSet) -> CommitRecord:
        """Stage every artifact, then move them all into the module directory.

        If staging fails nothing in the module directory changes.  If a move
        fails, the moves already done are rolled back before re-raising.
        """
        parent = self.module_dir.parent
        parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{self.module_dir.name}-staging-", dir=parent))

        try:
            staged: list[tuple[Path, Path]] = []
            for artifact in artifact_set.artifacts:
                source = staging / artifact.filename
                source.write_text(artifact.content, encoding="utf-8", newline="")
                staged.append((source, self.module_dir / artifact.filename))

            record = CommitRecord(module_dir=self.module_dir)
            record.created_dir = not self.module_dir.exists()
            self.module_dir.mkdir(parents=True, exist_ok=True)

            try:
                for source, target in staged:
                    record.previous[target] = target.read_bytes() if target.exists() else None
                    os.replace(source, target)
                    record.written.append(target)
            except BaseException:
                record.rollback()
                raise
            return record
        finally:
            shutil.rmtree(staging, ignore_errors=True)
