"""Semantic version values parsed from tag names."""

import re
from functools import total_ordering
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

_VERSION_PATTERN = re.compile(
    r"^(?P<major>\d+)"
    r"(\.(?P<minor>\d+))?"
    r"(\.(?P<patch>\d+))?"
    r"(\.(?P<fourth>\d+))?"
    r"(-(?P<tag>[^+]*))?"
    r"(\+(?P<build>.*))?$"
)
_PRE_RELEASE_PATTERN = re.compile(r"^(?P<name>.*?)\.?(?P<number>\d+)?$")


@total_ordering
class PreReleaseTag(BaseModel):
    """Pre-release label such as ``beta.1``."""

    model_config = ConfigDict(frozen=True)

    name: str = Field("", description="Label name, e.g. beta")
    number: Optional[int] = Field(None, description="Label number, e.g. 1")

    @classmethod
    def parse(cls, value: str) -> Optional["PreReleaseTag"]:
        """Parse a pre-release label, returning None for an empty label."""
        if not value:
            return None
        match = _PRE_RELEASE_PATTERN.match(value)
        number = match.group("number")
        return cls(name=match.group("name"), number=int(number) if number else None)

    def _sort_key(self) -> Tuple[str, int]:
        return (self.name.lower(), self.number if self.number is not None else -1)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PreReleaseTag):
            return NotImplemented
        return self._sort_key() == other._sort_key()

    def __hash__(self) -> int:
        return hash(self._sort_key())

    def __lt__(self, other: "PreReleaseTag") -> bool:
        if not isinstance(other, PreReleaseTag):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __str__(self) -> str:
        if self.number is None:
            return self.name
        if not self.name:
            return str(self.number)
        return f"{self.name}.{self.number}"


@total_ordering
class SemanticVersion(BaseModel):
    """A parsed semantic version.

    Ordering follows semver precedence: a pre-release sorts before the
    release with the same major.minor.patch. Build metadata and the fourth
    version part only break ties, so equality and ordering always agree.
    """

    model_config = ConfigDict(frozen=True)

    major: int = Field(0, ge=0, description="Major version")
    minor: int = Field(0, ge=0, description="Minor version")
    patch: int = Field(0, ge=0, description="Patch version")
    pre_release_tag: Optional[PreReleaseTag] = Field(None, description="Pre-release label")
    build_metadata: Optional[str] = Field(None, description="Build metadata after '+'")
    commits_since_tag: Optional[int] = Field(
        None, description="Fourth numeric part of a four-part version"
    )

    @classmethod
    def try_parse(cls, version: str, tag_prefix: Optional[str] = None) -> Optional["SemanticVersion"]:
        """Parse ``version`` after stripping an optional ``tag_prefix`` regex.

        Args:
            version: Tag name or version string
            tag_prefix: Regular expression for the prefix to strip (optional match)

        Returns:
            SemanticVersion, or None if the string is not a version
        """
        if tag_prefix:
            prefixed = re.match(rf"^(?:{tag_prefix})?(?P<version>.*)$", version)
            version = prefixed.group("version")

        match = _VERSION_PATTERN.match(version)
        if match is None:
            return None

        fourth = match.group("fourth")
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor") or 0),
            patch=int(match.group("patch") or 0),
            pre_release_tag=PreReleaseTag.parse(match.group("tag") or ""),
            build_metadata=match.group("build") or None,
            commits_since_tag=int(fourth) if fourth else None,
        )

    @property
    def is_pre_release(self) -> bool:
        return self.pre_release_tag is not None

    def _sort_key(self) -> tuple:
        # Releases sort after any pre-release of the same version
        if self.pre_release_tag is None:
            precedence = (self.major, self.minor, self.patch, 1, ("", -1))
        else:
            precedence = (self.major, self.minor, self.patch, 0, self.pre_release_tag._sort_key())
        commits = self.commits_since_tag if self.commits_since_tag is not None else -1
        return precedence + (commits, self.build_metadata or "")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._sort_key() == other._sort_key()

    def __hash__(self) -> int:
        return hash(self._sort_key())

    def __lt__(self, other: "SemanticVersion") -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre_release_tag is not None:
            text += f"-{self.pre_release_tag}"
        if self.build_metadata:
            text += f"+{self.build_metadata}"
        return text
