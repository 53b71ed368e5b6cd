"""Custom exception classes for trellotemplate.

Two families live here: errors raised by the Trello API client, and
errors raised by the copy workflow itself (configuration, board
resolution, template filtering).
"""

from __future__ import annotations


class TrelloAPIError(Exception):
    """Base exception for Trello API errors"""

    def __init__(
        self, message: str, status_code: int | None = None, response_text: str | None = None
    ):
        self.status_code = status_code
        self.response_text = response_text
        super().__init__(message)


class TrelloAuthenticationError(TrelloAPIError):
    """Raised when API credentials are invalid or expired (401/403)"""

    pass


class TrelloNotFoundError(TrelloAPIError):
    """Raised when a board, list, or card is not found (404)"""

    pass


class TrelloRateLimitError(TrelloAPIError):
    """Raised when rate limit is exceeded (429) after retries"""

    pass


class TrelloServerError(TrelloAPIError):
    """Raised when Trello's servers return an error (500/502/503/504)"""

    pass


class TemplateCopyError(Exception):
    """Base exception for errors in the template copy workflow."""

    pass


class ConfigurationError(TemplateCopyError):
    """Raised when the configuration file is missing, malformed, or inconsistent.

    Always raised before any network call is made.

    Attributes:
        key: Configuration key at fault (if applicable)
    """

    def __init__(self, message: str, key: str | None = None):
        self.key = key
        super().__init__(message)


class BoardResolutionError(TemplateCopyError):
    """Raised when a board name cannot be resolved to exactly one board.

    Attributes:
        board_name: The name that was searched for
        candidates: Boards returned by the search (may be empty)
    """

    def __init__(self, message: str, board_name: str, candidates: list[dict] | None = None):
        self.board_name = board_name
        self.candidates = candidates or []
        super().__init__(message)


class BoardNotFoundError(BoardResolutionError):
    """Raised when a board search returns no results"""

    pass


class TooManyBoardsError(BoardResolutionError):
    """Raised when a board search returns more candidates than can be offered"""

    pass


class EmptyTemplateError(TemplateCopyError):
    """Raised when no template lists would be copied"""

    pass
