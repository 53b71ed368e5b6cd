"""Copy template lists and cards from one Trello board to many."""

from __future__ import annotations

from trellotemplate.cli import main
from trellotemplate.config import CopyConfig, load_config, parse_config
from trellotemplate.copier import BoardCopyResult, ListCopyResult, TemplateCopier
from trellotemplate.exceptions import (
    BoardNotFoundError,
    BoardResolutionError,
    ConfigurationError,
    EmptyTemplateError,
    TemplateCopyError,
    TooManyBoardsError,
    TrelloAPIError,
    TrelloAuthenticationError,
    TrelloNotFoundError,
    TrelloRateLimitError,
    TrelloServerError,
)
from trellotemplate.logging_config import setup_logging
from trellotemplate.rate_limiter import RateLimiter
from trellotemplate.resolver import MAX_CANDIDATES, BoardResolver, DestinationResolution
from trellotemplate.template_filter import filter_template_lists, is_selected, sort_by_position
from trellotemplate.trello_client import TrelloClient

__version__ = "0.1.0"

__all__ = [
    # Core classes
    "TrelloClient",
    "BoardResolver",
    "DestinationResolution",
    "TemplateCopier",
    "BoardCopyResult",
    "ListCopyResult",
    "RateLimiter",
    "CopyConfig",
    "load_config",
    "parse_config",
    "filter_template_lists",
    "is_selected",
    "sort_by_position",
    "setup_logging",
    "MAX_CANDIDATES",
    # Exceptions
    "TrelloAPIError",
    "TrelloAuthenticationError",
    "TrelloNotFoundError",
    "TrelloRateLimitError",
    "TrelloServerError",
    "TemplateCopyError",
    "ConfigurationError",
    "BoardResolutionError",
    "BoardNotFoundError",
    "TooManyBoardsError",
    "EmptyTemplateError",
    # CLI
    "main",
]
