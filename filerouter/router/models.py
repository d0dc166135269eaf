"""Data models for the file router."""

import mimetypes
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence, Union

LeafPath = tuple[str, ...]

# Enough for any content preview; larger files are never previewed in full
DEFAULT_CONTENT_BYTES = 16 * 1024


class RoutingMethod(str, Enum):
    """Which signal produced a routing suggestion."""
    RULE = "rule"
    LEARNED = "learned"
    AI = "ai"
    FALLBACK = "fallback"


# Exact-tie precedence: more specific / human-confirmed signals win
METHOD_PRECEDENCE = {
    RoutingMethod.LEARNED: 0,
    RoutingMethod.RULE: 1,
    RoutingMethod.AI: 2,
    RoutingMethod.FALLBACK: 3,
}


def as_leaf_path(value: Union[str, Sequence[str]]) -> LeafPath:
    """
    Coerce a folder path to its canonical tuple form.

    Accepts either a sequence of labels or a slash separated string such as
    "3_PROGETTO/ARC/" (the trailing slash is optional).
    """
    if isinstance(value, str):
        parts = value.replace("\\", "/").split("/")
    else:
        parts = list(value)
    return tuple(p.strip() for p in parts if p and p.strip())


def format_leaf_path(path: Sequence[str]) -> str:
    """Render a leaf path as "A/B/C"."""
    return "/".join(path)


def to_confidence_percent(confidence: float) -> int:
    """Persisted form of a real-valued confidence: an integer in [0, 100]."""
    return max(0, min(100, int(round(confidence * 100))))


@dataclass(frozen=True)
class FolderNode:
    """A folder label with its (possibly empty) sub-folders."""
    label: str
    children: tuple["FolderNode", ...] = ()


@dataclass(frozen=True)
class FolderTemplate:
    """A named, immutable tree of folder labels."""

    template_id: str
    name: str
    folders: tuple[FolderNode, ...]
    fallback: LeafPath
    descriptions: dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    def iter_paths(self) -> Iterator[LeafPath]:
        """Yield every folder path, depth first, in template order."""
        def _walk(prefix: LeafPath, nodes: tuple[FolderNode, ...]) -> Iterator[LeafPath]:
            for node in nodes:
                path = prefix + (node.label,)
                yield path
                yield from _walk(path, node.children)

        yield from _walk((), self.folders)

    def paths(self) -> list[LeafPath]:
        """All folder paths in the template."""
        return list(self.iter_paths())

    def contains(self, path: Sequence[str]) -> bool:
        """Check whether a path names a folder of this template."""
        target = tuple(path)
        if not target:
            return False
        nodes = self.folders
        for label in target:
            match = next((n for n in nodes if n.label == label), None)
            if match is None:
                return False
            nodes = match.children
        return True

    def render(self) -> str:
        """Indented outline of the tree, one folder per line."""
        lines = []
        for path in self.iter_paths():
            indent = "  " * (len(path) - 1)
            line = f"{indent}{path[-1]}/"
            description = self.descriptions.get(format_leaf_path(path))
            if description:
                line += f" - {description}"
            lines.append(line)
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """Nested {label: {...}} structure, as handed to a structure materializer."""
        def _expand(nodes: tuple[FolderNode, ...]) -> dict:
            return {n.label: _expand(n.children) for n in nodes}
        return _expand(self.folders)


@dataclass
class FileDescriptor:
    """A file to be routed. Owned by the caller for one routing request."""

    name: str
    size: int = 0
    content: Optional[bytes] = None
    mime_type: Optional[str] = None

    @property
    def extension(self) -> str:
        """Lower-cased extension without the dot ("" when absent)."""
        stem, dot, ext = self.name.rpartition(".")
        if not dot or not stem:
            return ""
        return ext.lower()

    @property
    def guessed_type(self) -> str:
        """MIME type, guessed from the name when not supplied."""
        if self.mime_type:
            return self.mime_type
        guessed, _ = mimetypes.guess_type(self.name)
        return guessed or "application/octet-stream"

    @classmethod
    def from_path(cls, path: Path, max_bytes: Optional[int] = DEFAULT_CONTENT_BYTES) -> "FileDescriptor":
        """
        Build a descriptor from a file on disk.

        Only the first ``max_bytes`` of the file are read (``None`` reads it
        all, ``0`` reads nothing). ``size`` is always the full size on disk.
        """
        path = Path(path)
        content = None
        if max_bytes is None:
            content = path.read_bytes()
        elif max_bytes > 0:
            with path.open("rb") as f:
                content = f.read(max_bytes)
        return cls(name=path.name, size=path.stat().st_size, content=content)


@dataclass
class RoutingCandidate:
    """A single signal's proposal. Never persisted directly."""

    leaf_path: LeafPath
    confidence: float
    method: RoutingMethod
    reasoning: str = ""
    alternatives: list[LeafPath] = field(default_factory=list)

    def __post_init__(self) -> None:
        # Range is checked where untrusted candidates enter (ClassifierAdapter)
        self.leaf_path = as_leaf_path(self.leaf_path)
        self.confidence = float(self.confidence)


@dataclass
class RoutingResult:
    """The arbiter's answer for one file."""

    leaf_path: LeafPath
    confidence: int  # 0-100
    method: RoutingMethod
    record_id: str
    reasoning: str = ""
    alternatives: list[LeafPath] = field(default_factory=list)

    @property
    def path(self) -> str:
        return format_leaf_path(self.leaf_path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "leafPath": list(self.leaf_path),
            "confidence": self.confidence,
            "method": self.method.value,
            "recordId": self.record_id,
            "reasoning": self.reasoning,
            "alternatives": [list(a) for a in self.alternatives],
        }


@dataclass
class LearnedPattern:
    """A confirmed signature -> folder mapping."""

    signature: str
    leaf_path: LeafPath
    times_confirmed: int = 1
    updated_at: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "signature": self.signature,
            "leaf_path": list(self.leaf_path),
            "times_confirmed": self.times_confirmed,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LearnedPattern":
        return cls(
            signature=data["signature"],
            leaf_path=as_leaf_path(data["leaf_path"]),
            times_confirmed=int(data.get("times_confirmed", 1)),
            updated_at=data.get("updated_at"),
        )


@dataclass
class RoutingRecord:
    """Audit entry for one routing decision."""

    id: str
    file_name: str
    template_id: str
    suggested_path: LeafPath
    confidence: int
    method: RoutingMethod
    signature: str
    project_id: Optional[str] = None
    file_type: Optional[str] = None
    actual_path: Optional[LeafPath] = None
    created_at: str = field(default_factory=lambda: datetime.now().isoformat(timespec="microseconds"))
    reported_at: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "file_name": self.file_name,
            "template_id": self.template_id,
            "project_id": self.project_id,
            "file_type": self.file_type,
            "suggested_path": list(self.suggested_path),
            "actual_path": list(self.actual_path) if self.actual_path is not None else None,
            "confidence": self.confidence,
            "method": self.method.value,
            "signature": self.signature,
            "created_at": self.created_at,
            "reported_at": self.reported_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RoutingRecord":
        actual = data.get("actual_path")
        return cls(
            id=data["id"],
            file_name=data["file_name"],
            template_id=data["template_id"],
            project_id=data.get("project_id"),
            file_type=data.get("file_type"),
            suggested_path=as_leaf_path(data["suggested_path"]),
            actual_path=as_leaf_path(actual) if actual is not None else None,
            confidence=int(data["confidence"]),
            method=RoutingMethod(data["method"]),
            signature=data.get("signature", ""),
            created_at=data["created_at"],
            reported_at=data.get("reported_at"),
        )
