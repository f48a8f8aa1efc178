"""Classify changed paths into deployable artifacts."""

from collections.abc import Iterable

from forcewatch.models import ArtifactGroup, ArtifactType, FileChange


def classify_path(path: str) -> tuple[ArtifactType, str] | None:
    """Map one changed path to ``(artifact_type, name)``.

    The file's immediate parent folder selects the type and the extension
    must agree with it: ``classes/Foo.cls`` and ``triggers/Bar.trigger``
    classify, ``classes/Bar.trigger`` does not.

    Args:
        path: Path relative to the subscription root, ``/`` or ``\\`` separated

    Returns:
        The artifact type and base name, or None if the path is not an artifact
    """
    parts = [p for p in path.replace("\\", "/").split("/") if p]
    if len(parts) < 2:
        return None

    folder, filename = parts[-2], parts[-1]
    for artifact_type in ArtifactType:
        if folder != artifact_type.folder:
            continue
        ext = artifact_type.extension
        if filename.endswith(ext) and len(filename) > len(ext):
            return artifact_type, filename[: -len(ext)]
        return None
    return None


def classify(files: Iterable[FileChange | str]) -> ArtifactGroup:
    """Group changed files by artifact type, keeping batch order."""
    group = ArtifactGroup()
    for f in files:
        name = f if isinstance(f, str) else f.name
        match = classify_path(name)
        if match:
            group.add(*match)
    return group
