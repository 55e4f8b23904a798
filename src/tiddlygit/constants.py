"""Constants shared across tiddlygit."""

from __future__ import annotations

# The story list is rewritten on every navigation, so its saves are squashed.
STORY_LIST_TITLE = "$:/StoryList"

SAVE_MESSAGE_TEMPLATE = 'Save tiddler "{title}"'
DELETE_MESSAGE_TEMPLATE = 'Delete tiddler "{title}"'

# Config discovery
CONFIG_DIR_NAME = ".tiddlygit"
CONFIG_FILENAME = "config.toml"
