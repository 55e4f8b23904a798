"""Credential strategies for pushing the wiki repository.

The push transport is git itself (driven by GitPython), so a strategy does not
hand out credential objects; it produces the environment the git process runs
under. Every strategy disables interactive prompts so a push fails fast
instead of hanging on a passphrase or username prompt in a background thread.
"""

from __future__ import annotations

import os
import re
import shlex
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from .config_schema import RemoteConfig
from .repository import GitPushError


class CredentialError(GitPushError):
    """Credentials for the push could not be resolved."""
    pass


# scp-like syntax: [user@]host:path (but not a Windows drive letter)
_SCP_LIKE = re.compile(r"^(?:(?P<user>[^@/]+)@)?(?P<host>[^:/]{2,}):(?!//)")


def is_ssh_url(url: str) -> bool:
    return url.startswith("ssh://") or url.startswith("git+ssh://") or bool(_SCP_LIKE.match(url))


def ssh_username(url: str) -> Optional[str]:
    """User name embedded in an SSH remote URL, if any."""
    if "://" in url:
        netloc = url.split("://", 1)[1].split("/", 1)[0]
        if "@" in netloc:
            return netloc.rsplit("@", 1)[0]
        return None
    match = _SCP_LIKE.match(url)
    return match.group("user") if match else None


def _base_environment() -> Dict[str, str]:
    return {
        "GIT_TERMINAL_PROMPT": "0",
        "GCM_INTERACTIVE": "never",
    }


class CredentialStrategy(ABC):
    """Resolves the git environment for a push to ``url``."""

    name: str = ""

    @abstractmethod
    def environment(self, url: str) -> Dict[str, str]:
        """Raises CredentialError if credentials cannot be resolved."""


class AgentCredentials(CredentialStrategy):
    """Authenticate SSH remotes through the running ssh-agent."""

    name = "agent"

    def environment(self, url: str) -> Dict[str, str]:
        env = _base_environment()
        if not is_ssh_url(url):
            return env
        if not os.environ.get("SSH_AUTH_SOCK"):
            user = ssh_username(url) or "<default>"
            raise CredentialError(f"No ssh-agent available for user {user} (SSH_AUTH_SOCK unset)")
        env["GIT_SSH_COMMAND"] = "ssh -o BatchMode=yes"
        return env


class KeypairCredentials(CredentialStrategy):
    """Authenticate SSH remotes with an explicit key pair."""

    name = "keypair"

    def __init__(self, private_key: str):
        self.private_key = private_key

    def environment(self, url: str) -> Dict[str, str]:
        env = _base_environment()
        if not is_ssh_url(url):
            return env
        if not self.private_key:
            raise CredentialError("Keypair auth configured without a private key")
        key_path = Path(self.private_key).expanduser()
        if not key_path.is_file():
            raise CredentialError(f"Private key not found: {key_path}")
        env["GIT_SSH_COMMAND"] = (
            f"ssh -i {shlex.quote(str(key_path))} -o IdentitiesOnly=yes -o BatchMode=yes"
        )
        return env


class NoCredentials(CredentialStrategy):
    """Push unauthenticated; remotes requiring auth will reject the push."""

    name = "none"

    def environment(self, url: str) -> Dict[str, str]:
        env = _base_environment()
        env["GIT_ASKPASS"] = "echo"
        if is_ssh_url(url):
            env["GIT_SSH_COMMAND"] = "ssh -o BatchMode=yes"
        return env


def credentials_from_config(remote: RemoteConfig) -> CredentialStrategy:
    if remote.auth == "agent":
        return AgentCredentials()
    if remote.auth == "keypair":
        return KeypairCredentials(remote.private_key)
    return NoCredentials()
