"""JSON-file program store.

Each saved program is one file ``<id>.json``. The id is derived from the
program content, so saving the same program twice is idempotent and keeps
the first creation timestamp.
"""

import hashlib
import json
import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.bus import EventBus, get_event_bus
from ..core.errors import ProgramStoreError
from ..core.events import Event, EventType
from ..core.types import Program
from .model import BLOCK_COLORS, display_label, load_program, program_to_list, walk


logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r"[0-9a-f]{16}")


class FlatBlock(BaseModel):
    """Flat listing entry as the editor's history view shows it."""

    type: str
    color: str


class ProgramRecord(BaseModel):
    """On-disk record of a saved program."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    blocks: list[FlatBlock] = Field(default_factory=list)
    program: list[dict] = Field(default_factory=list)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="createdAt",
    )


class SaveAck(BaseModel):
    """Acknowledgement returned by ``ProgramStore.save``."""

    id: str
    created_at: datetime
    created: bool  # False when an identical program was already stored


def program_id(program: Program) -> str:
    """Content hash of a program (stable across saves)."""
    canonical = json.dumps(program_to_list(program), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


class ProgramStore:
    """Saves and loads block programs under a directory."""

    def __init__(self, path: str | Path = "outputs/programs", bus: EventBus | None = None):
        """Initialize store.

        Args:
            path: Directory holding the JSON records (created on first save)
            bus: Event bus (uses global if None)
        """
        self.path = Path(path)
        self.bus = bus or get_event_bus()

    def _record_path(self, record_id: str) -> Path:
        if not _ID_PATTERN.fullmatch(record_id):
            raise ProgramStoreError(f"Invalid program id '{record_id}'")
        return self.path / f"{record_id}.json"

    def save(self, program: Program, name: str | None = None) -> SaveAck:
        """Persist a program.

        Args:
            program: Block tree to save
            name: Optional display name

        Returns:
            SaveAck with the record id and creation timestamp
        """
        record_id = program_id(program)
        existing = self._record_path(record_id)
        if existing.exists():
            record = self._read(existing)
            logger.info(f"Program {record_id} already stored")
            return SaveAck(id=record.id, created_at=record.created_at, created=False)

        record = ProgramRecord(
            id=record_id,
            name=name or "",
            blocks=[
                FlatBlock(type=display_label(b.action), color=BLOCK_COLORS[b.kind])
                for b in walk(program)
            ],
            program=program_to_list(program),
        )
        self._write(record)
        logger.info(f"Saved program {record_id} ({len(record.blocks)} blocks)")

        self.bus.publish(Event(
            type=EventType.PROGRAM_SAVED,
            data={"id": record_id, "name": record.name},
            source="program_store"
        ))
        return SaveAck(id=record.id, created_at=record.created_at, created=True)

    def load(self, record_id: str) -> Program:
        """Load a saved program tree.

        Raises:
            ProgramStoreError: If the record is missing or unreadable
        """
        return load_program(self.get(record_id).program, clamp=False)

    def get(self, record_id: str) -> ProgramRecord:
        """Load a raw record."""
        path = self._record_path(record_id)
        if not path.exists():
            raise ProgramStoreError(f"No saved program with id '{record_id}'")
        return self._read(path)

    def list(self) -> list[ProgramRecord]:
        """All records, oldest first."""
        if not self.path.exists():
            return []
        records = [self._read(p) for p in sorted(self.path.glob("*.json"))]
        return sorted(records, key=lambda r: r.created_at)

    def delete(self, record_id: str) -> bool:
        """Remove a record. Returns False if it did not exist.

        Raises:
            ProgramStoreError: If the id is malformed
        """
        path = self._record_path(record_id)
        if not path.exists():
            return False
        path.unlink()
        self.bus.publish(Event(
            type=EventType.PROGRAM_DELETED,
            data={"id": record_id},
            source="program_store"
        ))
        return True

    def _read(self, path: Path) -> ProgramRecord:
        try:
            return ProgramRecord.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            raise ProgramStoreError(f"Failed to read {path}: {e}") from e

    def _write(self, record: ProgramRecord) -> None:
        """Write with tmp file + atomic rename."""
        final_path = self._record_path(record.id)
        tmp_path = self.path / f".{record.id}.tmp"
        try:
            self.path.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(record.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
            os.replace(tmp_path, final_path)
        except OSError as e:
            raise ProgramStoreError(f"Failed to write {final_path}: {e}") from e
