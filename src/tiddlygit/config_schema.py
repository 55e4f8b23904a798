"""Configuration schema for tiddlygit.

Defines the git commit and remote push options with types, defaults, and
validation. Uses Pydantic for schema enforcement and clear error messages.
The loaded configuration is frozen: it is read once at startup and never
changes for the lifetime of a coordinator.
"""

from __future__ import annotations

import warnings
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .constants import STORY_LIST_TITLE


class GitConfig(BaseModel):
    """Commit behaviour."""

    model_config = ConfigDict(frozen=True)

    commit_drafts: bool = Field(
        default=False,
        description="Commit draft tiddlers (drafts are skipped entirely when False)",
    )
    author_name: str = Field(
        default="",
        description="Commit author/committer name (empty = repository default)",
    )
    author_email: str = Field(
        default="",
        description="Commit author/committer email (empty = repository default)",
    )
    squash_subject: str = Field(
        default=STORY_LIST_TITLE,
        description="Subject whose consecutive saves are squashed into one commit",
    )


class RemoteConfig(BaseModel):
    """Remote push behaviour."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(
        default="origin",
        min_length=1,
        description="Name of the remote to push to",
    )
    # New commits restart this timer, so a burst of saves is pushed once.
    push_timeout: float = Field(
        default=60.0,
        description="Seconds after the last commit before pushing (<= 0 disables)",
    )
    # Not reset by commits; gives an eventual push when the remote is flaky.
    push_interval: float = Field(
        default=60.0 * 60.0,
        description="Seconds between periodic pushes (<= 0 disables)",
    )
    auth: Literal["agent", "keypair", "none"] = Field(
        default="agent",
        description="SSH credential mode for pushes",
    )
    private_key: str = Field(
        default="",
        description="Path to the private key (keypair auth only)",
    )

    @field_validator("private_key")
    @classmethod
    def validate_key_path(cls, v: str) -> str:
        """Warn if a configured key path doesn't exist."""
        if v:
            path = Path(v).expanduser()
            if not path.exists():
                warnings.warn(f"SSH key path does not exist: {v}", UserWarning)
            elif not path.is_file():
                warnings.warn(f"SSH key path is not a file: {v}", UserWarning)
        return v

    @model_validator(mode="after")
    def validate_keypair(self) -> "RemoteConfig":
        if self.auth == "keypair" and not self.private_key:
            warnings.warn(
                "Keypair auth selected but no private_key configured; pushes will fail",
                UserWarning,
            )
        return self

    @property
    def debounce_enabled(self) -> bool:
        return self.push_timeout > 0

    @property
    def interval_enabled(self) -> bool:
        return self.push_interval > 0


class TiddlyGitConfig(BaseModel):
    """Root configuration model."""

    model_config = ConfigDict(frozen=True)

    version: int = Field(
        default=1,
        ge=1,
        description="Config schema version",
    )

    git: GitConfig = Field(default_factory=GitConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
