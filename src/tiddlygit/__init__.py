"""tiddlygit: git history and remote sync for TiddlyWiki folders."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("tiddlygit")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"  # Fallback for editable installs without metadata

from .config_loader import ConfigError, get_config, load_config  # noqa: F401
from .config_schema import TiddlyGitConfig  # noqa: F401
from .coordinator import GitCoordinator  # noqa: F401
from .models import Changeset, CommitResult  # noqa: F401
from .observability import LoggingSink, SyncEvent  # noqa: F401

__all__ = [
    "ConfigError",
    "get_config",
    "load_config",
    "TiddlyGitConfig",
    "GitCoordinator",
    "Changeset",
    "CommitResult",
    "LoggingSink",
    "SyncEvent",
    "__version__",
]
