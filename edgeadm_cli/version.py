"""Version parsing and config-schema selection.

KubeEdge 1.2.0 replaced the ``edge.yaml``/``modules.yaml`` pair with a single
``edgecore.yaml``. Everything older keeps the legacy layout.
"""

import functools
import re
from dataclasses import dataclass, field
from enum import Enum

_NUMBER = re.compile(r"[0-9]+")
_IDENTIFIER = re.compile(r"[0-9A-Za-z-]+")


class SchemaVariant(str, Enum):
    """Which on-disk config layout a release expects."""

    LEGACY = "legacy"
    MODERN = "modern"


@functools.total_ordering
@dataclass(frozen=True)
class ToolVersion:
    """Semantic version of the edgecore release being installed.

    A pre-release sorts below its release (``1.2.0-beta.1 < 1.2.0``). Build
    metadata is kept for display and ignored when comparing.
    """

    major: int
    minor: int
    patch: int
    prerelease: str = ""
    build: str = field(default="", compare=False)

    @classmethod
    def parse(cls, version: str) -> "ToolVersion":
        """Parse ``x.y.z[-pre][+build]`` (optionally prefixed with ``v``)."""
        text = version.strip()
        if text.startswith("v"):
            text = text[1:]
        text, has_build, build = text.partition("+")
        text, has_pre, prerelease = text.partition("-")
        parts = text.split(".")
        if len(parts) != 3 or not all(_NUMBER.fullmatch(p) for p in parts):
            raise ValueError(f"invalid version: {version!r}")
        for sep, label in ((has_pre, prerelease), (has_build, build)):
            if sep and not all(_IDENTIFIER.fullmatch(p) for p in label.split(".")):
                raise ValueError(f"invalid version: {version!r}")
        # Numeric pre-release identifiers must not be zero-padded.
        if any(_NUMBER.fullmatch(p) and len(p) > 1 and p.startswith("0") for p in prerelease.split(".")):
            raise ValueError(f"invalid version: {version!r}")
        return cls(int(parts[0]), int(parts[1]), int(parts[2]), prerelease, build)

    def _precedence(self) -> tuple:
        if not self.prerelease:
            return (self.major, self.minor, self.patch, (1,))
        identifiers = tuple(
            (0, int(p), "") if _NUMBER.fullmatch(p) else (1, 0, p) for p in self.prerelease.split(".")
        )
        return (self.major, self.minor, self.patch, (0, identifiers))

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ToolVersion):
            return NotImplemented
        return self._precedence() < other._precedence()

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build:
            text += f"+{self.build}"
        return text


MODERN_SCHEMA_VERSION = ToolVersion(1, 2, 0)


def is_modern_schema(version: ToolVersion) -> bool:
    """True for releases that read the single ``edgecore.yaml`` document."""
    return version >= MODERN_SCHEMA_VERSION


def is_release_1_2(version: ToolVersion) -> bool:
    """True for any 1.2.x release, which still reads the cloud TLS paths."""
    return version.major == 1 and version.minor == 2


def select_variant(version: ToolVersion) -> SchemaVariant:
    if is_modern_schema(version):
        return SchemaVariant.MODERN
    return SchemaVariant.LEGACY
