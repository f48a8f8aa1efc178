"""Shared data models for forcewatch."""

from dataclasses import dataclass, field
from enum import Enum


class ArtifactType(Enum):
    """Deployable artifact kinds, keyed by their source folder."""

    CLASS = "classes"
    TRIGGER = "triggers"

    @property
    def folder(self) -> str:
        """Enclosing folder name for this artifact type."""
        return self.value

    @property
    def extension(self) -> str:
        """Source file extension, including the dot."""
        return ".cls" if self is ArtifactType.CLASS else ".trigger"

    @property
    def metadata_type(self) -> str:
        """Type name understood by the deploy tool (``-t`` argument)."""
        return "ApexClass" if self is ArtifactType.CLASS else "ApexTrigger"


class SessionState(Enum):
    """Lifecycle of a watch session."""

    INIT = "init"
    WATCHING = "watching"
    CLOCK_OBTAINED = "clock_obtained"
    SUBSCRIBED = "subscribed"
    LISTENING = "listening"
    FAILED = "failed"


@dataclass(frozen=True)
class WatchInfo:
    """Result of a watch-project request."""

    watch: str
    """Canonical watch root, possibly an ancestor of the requested path."""

    relative_path: str | None = None
    """Path of the requested root relative to ``watch``, if any."""

    warning: str | None = None
    """Non-fatal warning reported by the source."""

    @classmethod
    def from_response(cls, resp: dict) -> "WatchInfo":
        return cls(
            watch=resp["watch"],
            relative_path=resp.get("relative_path") or None,
            warning=resp.get("warning"),
        )


@dataclass(frozen=True)
class FileChange:
    """One changed file as reported by the notification source."""

    name: str
    size: int = 0
    mtime_ms: int = 0
    exists: bool = True
    type: str = "f"

    @classmethod
    def from_record(cls, record: dict | str) -> "FileChange":
        """Build from a source record.

        Sources that are asked for a single field send bare names instead of
        dicts, so both shapes are accepted.
        """
        if isinstance(record, str):
            return cls(name=record)
        return cls(
            name=record["name"],
            size=record.get("size", 0),
            mtime_ms=record.get("mtime_ms", 0),
            exists=record.get("exists", True),
            type=record.get("type", "f"),
        )


@dataclass
class NotificationBatch:
    """A single subscription notification from the source."""

    subscription: str
    root: str = ""
    clock: str | None = None
    files: list[FileChange] = field(default_factory=list)

    @classmethod
    def from_pdu(cls, pdu: dict) -> "NotificationBatch":
        return cls(
            subscription=pdu.get("subscription", ""),
            root=pdu.get("root", ""),
            clock=pdu.get("clock"),
            files=[FileChange.from_record(r) for r in pdu.get("files") or []],
        )


@dataclass
class ArtifactGroup:
    """Artifact names from one batch, grouped by type.

    Names keep batch order; duplicates are kept as delivered.
    """

    classes: list[str] = field(default_factory=list)
    triggers: list[str] = field(default_factory=list)

    def names_for(self, artifact_type: ArtifactType) -> list[str]:
        return self.classes if artifact_type is ArtifactType.CLASS else self.triggers

    def add(self, artifact_type: ArtifactType, name: str) -> None:
        self.names_for(artifact_type).append(name)

    def non_empty(self) -> list[tuple[ArtifactType, list[str]]]:
        """(type, names) pairs that have something to deploy, classes first."""
        return [(t, self.names_for(t)) for t in ArtifactType if self.names_for(t)]

    @property
    def is_empty(self) -> bool:
        return not self.classes and not self.triggers


@dataclass
class DeployResult:
    """Completion of one deploy invocation."""

    artifact_type: ArtifactType
    names: list[str]
    returncode: int | None = None
    stdout: str = ""
    stderr: str = ""
    error: str | None = None
    """Set when the command could not be run or exited non-zero."""

    @property
    def success(self) -> bool:
        return self.error is None and self.returncode == 0
