"""User configuration management for hunkline.

Handles reading and writing the .hunkline/config.yaml file in each repository.

Contains:
- DEFAULT_CONFIG: Default configuration values
- SignsConfig, StatusConfig, HunklineConfig: Validated configuration models
- load_config / save_config: Raw YAML access
- get_config: Load and validate the configuration
"""

import copy
import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from hunkline.git.status import Section

logger = logging.getLogger(__name__)


# Default configuration values
DEFAULT_CONFIG = {
    "signs": {
        "staged": "●",
        "unstaged": "○",
        "untracked": "?",
        "conflict": "!",
    },
    "status": {
        # Section order; any subset of the file sections plus "worktrees"
        "sections": ["untracked", "unstaged", "staged", "conflicted", "worktrees"],
        "visibility_level": 2,
        "worktrees_min_count": 2,
    },
}


class SignsConfig(BaseModel):
    """Signs shown in front of file entries, per section."""

    staged: str = "●"
    unstaged: str = "○"
    untracked: str = "?"
    conflict: str = "!"

    def for_section(self, section: Section) -> str:
        if section is Section.CONFLICTED:
            return self.conflict
        return getattr(self, section.value, "")


class StatusConfig(BaseModel):
    """Status buffer layout."""

    sections: list[Section] = [
        Section.UNTRACKED,
        Section.UNSTAGED,
        Section.STAGED,
        Section.CONFLICTED,
        Section.WORKTREES,
    ]
    visibility_level: int = 2
    worktrees_min_count: int = 2

    @field_validator("sections")
    @classmethod
    def no_duplicate_sections(cls, v: list[Section]) -> list[Section]:
        if len(set(v)) != len(v):
            raise ValueError("status.sections must not list a section twice")
        return v

    @field_validator("visibility_level")
    @classmethod
    def level_in_range(cls, v: int) -> int:
        if not 1 <= v <= 4:
            raise ValueError("status.visibility_level must be between 1 and 4")
        return v

    @field_validator("worktrees_min_count")
    @classmethod
    def min_count_not_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("status.worktrees_min_count must not be negative")
        return v


class HunklineConfig(BaseModel):
    """Validated hunkline configuration."""

    signs: SignsConfig = SignsConfig()
    status: StatusConfig = StatusConfig()


def get_config_dir(repo_root: Path) -> Path:
    """Get the repository config directory.

    Args:
        repo_root: The root directory of the git repository.

    Returns:
        Path to .hunkline/
    """
    return repo_root / ".hunkline"


def get_config_file(repo_root: Path) -> Path:
    """Return path to the config.yaml file.

    Args:
        repo_root: The root directory of the git repository.

    Returns:
        Path to .hunkline/config.yaml
    """
    return get_config_dir(repo_root) / "config.yaml"


def _merge_defaults(config: dict, defaults: dict) -> dict:
    for key, value in defaults.items():
        if key not in config:
            config[key] = copy.deepcopy(value)
        elif isinstance(value, dict) and isinstance(config[key], dict):
            _merge_defaults(config[key], value)
    return config


def load_config(repo_root: Path) -> dict:
    """Load the hunkline configuration from config.yaml.

    A missing file is not created; the defaults are returned instead.

    Args:
        repo_root: The root directory of the git repository.

    Returns:
        Configuration dictionary.
    """
    config_file = get_config_file(repo_root)

    if not config_file.exists():
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(config_file, "r") as f:
            config = yaml.safe_load(f) or {}
        if not isinstance(config, dict):
            raise yaml.YAMLError("config root must be a mapping")
        # Merge with defaults for any missing keys
        return _merge_defaults(config, DEFAULT_CONFIG)
    except (yaml.YAMLError, OSError) as e:
        # If config is corrupted, return defaults
        logger.warning("Ignoring unreadable config %s: %s", config_file, e)
        return copy.deepcopy(DEFAULT_CONFIG)


def save_config(repo_root: Path, config: dict) -> None:
    """Save the configuration to config.yaml.

    Args:
        repo_root: The root directory of the git repository.
        config: Configuration dictionary to save.
    """
    config_file = get_config_file(repo_root)

    # Ensure directory exists
    config_file.parent.mkdir(exist_ok=True)

    with open(config_file, "w") as f:
        yaml.dump(
            config,
            f,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )


def get_config(repo_root: Path) -> HunklineConfig:
    """Load and validate the configuration.

    Invalid values fall back to the defaults as a whole.

    Args:
        repo_root: The root directory of the git repository.

    Returns:
        HunklineConfig
    """
    raw = load_config(repo_root)
    try:
        return HunklineConfig.model_validate(raw)
    except ValidationError as e:
        logger.warning("Invalid configuration in %s, using defaults: %s", get_config_file(repo_root), e)
        return HunklineConfig()
