"""Load and validate the copy configuration file."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from trellotemplate.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "appsettings.json"
DEFAULT_SPACER_NAME = "New Lists ->"
DEFAULT_MAX_PARALLEL_BOARDS = 4

LABEL_POLICIES = ("migrate", "keep", "drop")
MEMBER_POLICIES = ("keep-existing", "drop")


@dataclass(frozen=True)
class CopyConfig:
    """Everything a copy run needs, validated."""

    api_key: str
    token: str
    template_board: str
    target_list_names: tuple[str, ...]
    destination_board_names: tuple[str, ...]
    ignore_target_lists: bool
    copy_cards: bool = False
    max_parallel_boards: int = DEFAULT_MAX_PARALLEL_BOARDS
    spacer_list_name: str = DEFAULT_SPACER_NAME
    label_policy: str = "migrate"
    member_policy: str = "keep-existing"


def load_env_file(env_file: str | None = None) -> None:
    """Load KEY=VALUE lines from a .env file into os.environ.

    Variables already set in the environment win over the file.
    """
    path = Path(env_file or os.getenv("TRELLO_ENV_FILE", ".env"))
    if not path.exists():
        return

    with open(path) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, value = line.split("=", 1)
                key = key.strip()
                if key not in os.environ:
                    os.environ[key] = value.strip().strip("'\"")


def _lookup(raw: dict[str, Any], key: str) -> tuple[bool, Any]:
    # Key names are matched case-insensitively, like the .NET configuration
    # binder that wrote the original appsettings.json files.
    for candidate, value in raw.items():
        if candidate.lower() == key.lower():
            return True, value
    return False, None


def _require(raw: dict[str, Any], key: str) -> Any:
    found, value = _lookup(raw, key)
    if not found or value is None:
        raise ConfigurationError(f"Missing required configuration key: {key}", key=key)
    return value


def _require_str(raw: dict[str, Any], key: str) -> str:
    value = _require(raw, key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"'{key}' must be a non-empty string", key=key)
    return value.strip()


def _require_bool(raw: dict[str, Any], key: str, default: bool | None = None) -> bool:
    found, value = _lookup(raw, key)
    if not found and default is not None:
        return default
    if not found:
        raise ConfigurationError(f"Missing required configuration key: {key}", key=key)
    if not isinstance(value, bool):
        raise ConfigurationError(f"'{key}' must be true or false", key=key)
    return value


def _require_names(raw: dict[str, Any], key: str) -> tuple[str, ...]:
    value = _require(raw, key)
    if not isinstance(value, list):
        raise ConfigurationError(f"'{key}' must be a list of names", key=key)
    if not all(isinstance(name, str) for name in value):
        raise ConfigurationError(f"All entries in '{key}' must be strings", key=key)
    if len(set(value)) != len(value):
        raise ConfigurationError(f"'{key}' cannot contain duplicate names", key=key)
    return tuple(value)


def _optional_choice(raw: dict[str, Any], key: str, choices: tuple[str, ...]) -> str:
    found, value = _lookup(raw, key)
    if not found:
        return choices[0]
    if value not in choices:
        raise ConfigurationError(f"'{key}' must be one of: {', '.join(choices)}", key=key)
    return str(value)


def parse_config(raw: Any, environ: dict[str, str] | None = None) -> CopyConfig:
    """Validate a decoded configuration object.

    ``TRELLO_API_KEY`` and ``TRELLO_TOKEN`` in ``environ`` take precedence
    over the file's credentials.

    Raises:
        ConfigurationError: On any missing key, wrong type or duplicate name
    """
    if not isinstance(raw, dict):
        raise ConfigurationError("Configuration must be a JSON object")

    env = os.environ if environ is None else environ

    api_key = env.get("TRELLO_API_KEY") or _require_str(raw, "TrelloApiKey")
    token = env.get("TRELLO_TOKEN") or _require_str(raw, "TrelloUserToken")

    max_parallel = DEFAULT_MAX_PARALLEL_BOARDS
    found, value = _lookup(raw, "MaxParallelBoards")
    if found:
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ConfigurationError(
                "'MaxParallelBoards' must be a whole number of at least 1", key="MaxParallelBoards"
            )
        max_parallel = value

    spacer = DEFAULT_SPACER_NAME
    found, _ = _lookup(raw, "SpacerListName")
    if found:
        spacer = _require_str(raw, "SpacerListName")

    return CopyConfig(
        api_key=api_key,
        token=token,
        template_board=_require_str(raw, "TemplateBoard"),
        target_list_names=_require_names(raw, "TargetListNames"),
        destination_board_names=_require_names(raw, "DestinationBoardNames"),
        ignore_target_lists=_require_bool(raw, "IgnoreTargetLists"),
        copy_cards=_require_bool(raw, "CopyCards", default=False),
        max_parallel_boards=max_parallel,
        spacer_list_name=spacer,
        label_policy=_optional_choice(raw, "LabelPolicy", LABEL_POLICIES),
        member_policy=_optional_choice(raw, "MemberPolicy", MEMBER_POLICIES),
    )


def load_config(json_path: str | None = None) -> CopyConfig:
    """Load the copy configuration from a JSON file

    Args:
        json_path: Path to the JSON file. Defaults to ``TRELLO_TEMPLATE_CONFIG``
                   or ``appsettings.json`` in the working directory.

    Returns:
        Validated CopyConfig

    Raises:
        ConfigurationError: If the file is missing, not valid JSON, or invalid
    """
    path = Path(json_path or os.getenv("TRELLO_TEMPLATE_CONFIG", DEFAULT_CONFIG_PATH))

    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        with open(path) as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in configuration file {path}: {e}") from e

    config = parse_config(raw)
    logger.debug(f"Loaded configuration from {path}")
    return config
