"""Configuration models."""

import re
from pathlib import Path
from typing import Dict, List, Optional

import structlog
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)

MATCH_ANYTHING = ".*"


class RepositoryConfig(BaseModel):
    """Configuration for a Git repository to analyze."""

    repo_path: Path = Field(..., description="Path to the Git repository")
    include_remote_branches: bool = Field(
        True, description="Whether remote-tracking refs take part in branch searches"
    )

    class Config:
        """Pydantic config."""
        json_schema_extra = {
            "example": {
                "repo_path": "/path/to/repo",
                "include_remote_branches": True,
            }
        }


class BranchConfig(BaseModel):
    """Naming rule for one family of branches."""

    regex: str = Field(..., description="Regular expression matching branch names")
    source_branches: List[str] = Field(
        default_factory=list,
        description="Names of branch configs this branch family is created from",
    )

    @field_validator("regex")
    @classmethod
    def _check_regex(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"Invalid branch regex {value!r}: {e}") from e
        return value


def _default_branches() -> Dict[str, BranchConfig]:
    return {
        "main": BranchConfig(regex=r"^master$|^main$", source_branches=["develop", "release"]),
        "develop": BranchConfig(regex=r"^dev(elop)?(ment)?$", source_branches=[]),
        "release": BranchConfig(
            regex=r"^releases?[/-]",
            source_branches=["develop", "main", "support", "release"],
        ),
        "feature": BranchConfig(
            regex=r"^features?[/-]",
            source_branches=["develop", "main", "release", "feature", "support", "hotfix"],
        ),
        "pull-request": BranchConfig(
            regex=r"^(pull|pull\-requests|pr)[/-]",
            source_branches=["develop", "main", "release", "feature", "support", "hotfix"],
        ),
        "hotfix": BranchConfig(
            regex=r"^hotfix(es)?[/-]", source_branches=["develop", "main", "support"]
        ),
        "support": BranchConfig(regex=r"^support[/-]", source_branches=["main"]),
    }


class VersioningConfig(BaseModel):
    """Tag prefix and branch naming rules used by the metadata provider."""

    tag_prefix: str = Field("[vV]", description="Regex prefix stripped from version tags")
    branches: Dict[str, BranchConfig] = Field(
        default_factory=_default_branches, description="Branch configs by name"
    )

    @model_validator(mode="after")
    def _check_source_branches(self) -> "VersioningConfig":
        for name, branch_config in self.branches.items():
            unknown = [sb for sb in branch_config.source_branches if sb not in self.branches]
            if unknown:
                raise ValueError(
                    f"Branch config '{name}' references undefined source branches: {unknown}"
                )
        return self

    @classmethod
    def from_file(cls, path: Path) -> "VersioningConfig":
        """Load a configuration from a JSON file.

        Raises:
            ValueError: If the file does not exist
            pydantic.ValidationError: If the file content is invalid
        """
        path = Path(path)
        if not path.exists():
            raise ValueError(f"Configuration file does not exist: {path}")
        return cls.model_validate_json(path.read_text(encoding="utf-8"))

    def get_config_for_branch(self, branch_name: str) -> Optional[BranchConfig]:
        """Find the branch config whose regex matches ``branch_name``.

        Returns:
            The first matching BranchConfig, or None if nothing matches
        """
        matches = [
            (name, config)
            for name, config in self.branches.items()
            if re.search(config.regex, branch_name, re.IGNORECASE)
        ]
        if not matches:
            return None
        if len(matches) > 1:
            logger.warning(
                "multiple_branch_configs_match",
                branch=branch_name,
                configs=[name for name, _ in matches],
                picked=matches[0][0],
            )
        return matches[0][1]

    def source_branch_patterns(self, branch_name: str) -> List[str]:
        """Regexes of the branches ``branch_name`` may have been created from."""
        branch_config = self.get_config_for_branch(branch_name)
        if branch_config is None:
            return [MATCH_ANYTHING]
        return [self.branches[sb].regex for sb in branch_config.source_branches]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GITLINEAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    tag_prefix: str = "[vV]"
    config_file: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    def load_versioning_config(self) -> VersioningConfig:
        """Build the versioning config from ``config_file`` or the defaults."""
        if self.config_file:
            return VersioningConfig.from_file(Path(self.config_file))
        return VersioningConfig(tag_prefix=self.tag_prefix)
