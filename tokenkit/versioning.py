"""
Version state of the published token list.

The current version lives in the base template (``base.tokenlist.json``) and
is mirrored into ``package.json``. Stores are passed in explicitly so the
classifier never touches persisted state: the verdict is computed first, then
applied here in one write per file.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple, Union
import json
import logging
import os
import tempfile

from .diff.change_events import VersionBump

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class Version:
    """Semantic version triple, ordered lexicographically."""
    major: int = 0
    minor: int = 0
    patch: int = 0

    def __post_init__(self):
        for name in ("major", "minor", "patch"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"Version {name} must be a non-negative integer, got {value!r}")

    @classmethod
    def parse(cls, text: str) -> "Version":
        parts = text.strip().split(".")
        if len(parts) != 3 or not all(p.isdigit() for p in parts):
            raise ValueError(f"Invalid version string: {text!r}")
        return cls(*(int(p) for p in parts))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Version":
        return cls(
            major=data.get("major", 0),
            minor=data.get("minor", 0),
            patch=data.get("patch", 0),
        )

    def to_dict(self) -> Dict[str, int]:
        return {"major": self.major, "minor": self.minor, "patch": self.patch}

    def bump(self, verdict: VersionBump) -> "Version":
        """Apply a classification verdict. NONE returns the same version."""
        if verdict is VersionBump.MAJOR:
            return Version(self.major + 1, 0, 0)
        if verdict is VersionBump.MINOR:
            return Version(self.major, self.minor + 1, 0)
        if verdict is VersionBump.PATCH:
            return Version(self.major, self.minor, self.patch + 1)
        return self

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


# Log line per verdict, as printed by the build
BUMP_DESCRIPTIONS = {
    VersionBump.MAJOR: "Major version increment (tokens removed/addresses changed)",
    VersionBump.MINOR: "Minor version increment (tokens added)",
    VersionBump.PATCH: "Patch version increment (token details changed)",
}


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-01-31T12:00:00.000Z."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def _read_json(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_json_atomic(path: Union[str, Path], data: Any) -> None:
    """Write 2-space indented JSON with a trailing newline, replacing the file atomically."""
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(json.dumps(data, indent=2, ensure_ascii=False) + "\n")
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class TemplateVersionStore:
    """Version held in the token list template under ``version`` and ``timestamp``."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def read(self) -> Tuple[Dict[str, Any], Version]:
        """Read the template and its current version.

        Raises:
            FileNotFoundError: If the template does not exist
            ValueError: If the template has no valid version object
        """
        template = _read_json(self.path)
        version = template.get("version")
        if not isinstance(version, dict):
            raise ValueError(f"Template {self.path} has no version object")
        return template, Version.from_dict(version)

    def write(self, version: Version, timestamp: str) -> None:
        """Replace the version and timestamp, keeping every other template key."""
        template, _ = self.read()
        template = {**template, "version": version.to_dict(), "timestamp": timestamp}
        write_json_atomic(self.path, template)


class PackageVersionStore:
    """Mirror of the version string in ``package.json``. A missing file is skipped."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def write(self, version: Version, timestamp: str) -> None:
        if not self.path.exists():
            logger.debug(f"No {self.path.name} to update")
            return
        package = _read_json(self.path)
        package["version"] = str(version)
        write_json_atomic(self.path, package)


def apply_increment(
    verdict: VersionBump,
    store: TemplateVersionStore,
    mirrors: Iterable[PackageVersionStore] = (),
    now: Optional[datetime] = None
) -> Optional[Version]:
    """
    Persist the version increment for a verdict.

    Args:
        verdict: Output of the change classifier
        store: Store holding the authoritative version
        mirrors: Stores that receive a copy of the version string
        now: Time for the new timestamp (defaults to the current time)

    Returns:
        The new version, or None if the verdict is NONE and nothing was written
    """
    _, current = store.read()
    if not verdict:
        logger.info("No semantic changes detected in token files - skipping version increment")
        return None

    new_version = current.bump(verdict)
    timestamp = utc_timestamp(now)

    store.write(new_version, timestamp)
    for mirror in mirrors:
        mirror.write(new_version, timestamp)

    logger.info(f"{BUMP_DESCRIPTIONS[verdict]}: {current} -> {new_version}")
    return new_version
