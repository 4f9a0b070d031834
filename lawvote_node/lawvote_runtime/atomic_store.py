from __future__ import annotations

"""
Atomic snapshot persistence for the governance ledger.

- Atomic write: temp file + fsync + os.replace + directory fsync
- Rolling backups (.bak1, .bak2, ...) rotated before every save
- Journal marker (.journal) present only while a save is in flight
- Load fallback: primary -> bak1 -> bak2 -> ...

Snapshots are canonical JSON so two nodes holding the same committed
history write byte-identical files.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .audit_proofs import canonical_json_bytes

log = logging.getLogger(__name__)

JsonDict = Dict[str, Any]
PathLike = Union[str, Path]


def _fsync_dir(dir_path: Path) -> None:
    try:
        fd = os.open(str(dir_path), os.O_DIRECTORY)
    except OSError:
        # not supported on every platform
        return
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def atomic_write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(str(tmp_path), str(path))
        _fsync_dir(path.parent)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def read_json(path: Path) -> Optional[JsonDict]:
    if not path.exists():
        return None
    try:
        obj = json.loads(path.read_bytes().decode("utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        log.warning("Unreadable snapshot at %s", path)
        return None
    return obj if isinstance(obj, dict) else None


class AtomicLedgerStore:
    def __init__(
        self,
        data_dir: PathLike = "data",
        *,
        filename: str = "lawvote_ledger.json",
        keep_backups: int = 2,
    ) -> None:
        self.data_dir = Path(data_dir)
        self.filename = filename
        self.keep_backups = max(0, int(keep_backups))

    @property
    def path(self) -> Path:
        return self.data_dir / self.filename

    @property
    def journal_path(self) -> Path:
        return self.path.with_suffix(self.path.suffix + ".journal")

    def backup_path(self, i: int) -> Path:
        return self.path.with_suffix(self.path.suffix + f".bak{i}")

    def exists(self) -> bool:
        return self.path.exists()

    def _candidates(self) -> List[Path]:
        return [self.path] + [self.backup_path(i) for i in range(1, self.keep_backups + 1)]

    def _rotate_backups(self) -> None:
        if self.keep_backups <= 0:
            return
        for i in range(self.keep_backups, 1, -1):
            src = self.backup_path(i - 1)
            if src.exists():
                os.replace(str(src), str(self.backup_path(i)))
        if self.path.exists():
            os.replace(str(self.path), str(self.backup_path(1)))

    def load(self) -> Optional[JsonDict]:
        if self.journal_path.exists():
            log.warning("Snapshot journal present at %s; last save may not have completed", self.journal_path)
        for p in self._candidates():
            obj = read_json(p)
            if obj is not None:
                if p != self.path:
                    log.warning("Loaded ledger snapshot from backup %s", p)
                return obj
        return None

    def save(self, snapshot: JsonDict) -> None:
        data = canonical_json_bytes(snapshot)
        atomic_write_bytes(self.journal_path, b"1")
        self._rotate_backups()
        atomic_write_bytes(self.path, data)
        self.journal_path.unlink()
