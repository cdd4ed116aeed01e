"""Document references, snapshots and write helpers."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


class _ServerTimestamp:
    """Sentinel replaced by the commit time when a write is applied."""

    _instance: _ServerTimestamp | None = None

    def __new__(cls) -> _ServerTimestamp:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class DocumentRef:
    """Slash-separated path to a single document."""

    path: str

    @classmethod
    def from_segments(cls, *segments: str) -> DocumentRef:
        if len(segments) % 2:
            msg = f"Document paths need an even number of segments, got {len(segments)}"
            raise ValueError(msg)
        for segment in segments:
            if not is_valid_segment(segment):
                msg = f"Invalid path segment: {segment!r}"
                raise ValueError(msg)
        return cls("/".join(segments))

    @property
    def id(self) -> str:
        return self.path.rsplit("/", 1)[-1]


def is_valid_segment(segment: str) -> bool:
    """Path segments must be non-empty and free of slashes."""
    return bool(segment) and "/" not in segment


@dataclass(frozen=True)
class DocumentSnapshot:
    """Point-in-time view of a document. ``version`` is 0 when it does not exist."""

    path: str
    data: dict[str, Any] | None
    version: int = 0

    @property
    def exists(self) -> bool:
        return self.data is not None

    def get(self, field_name: str, default: Any = None) -> Any:
        if self.data is None:
            return default
        return self.data.get(field_name, default)

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self.data) if self.data is not None else {}


@dataclass(frozen=True)
class Write:
    """A buffered set operation."""

    ref: DocumentRef
    data: dict[str, Any] = field(default_factory=dict)
    merge: bool = False


def resolve_server_timestamps(data: dict[str, Any], commit_time: datetime) -> dict[str, Any]:
    """Replace SERVER_TIMESTAMP sentinels with the ISO-8601 commit time."""
    stamp = commit_time.isoformat()
    return {k: (stamp if v is SERVER_TIMESTAMP else v) for k, v in data.items()}


def apply_write(existing: dict[str, Any] | None, write: Write, commit_time: datetime) -> dict[str, Any]:
    """Compute the document contents after ``write``.

    Merge writes update only the given fields; plain writes replace the
    whole document.
    """
    fields = resolve_server_timestamps(write.data, commit_time)
    if write.merge and existing is not None:
        merged = copy.deepcopy(existing)
        merged.update(fields)
        return merged
    return fields
