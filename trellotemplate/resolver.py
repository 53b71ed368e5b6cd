"""Resolve board names to boards."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from trellotemplate.exceptions import (
    BoardNotFoundError,
    BoardResolutionError,
    TooManyBoardsError,
)
from trellotemplate.trello_client import TrelloClient

logger = logging.getLogger(__name__)

# More matches than this means the name is too vague to be a real board
MAX_CANDIDATES = 10

Chooser = Callable[[str, list[dict]], int]


@dataclass
class DestinationResolution:
    """Outcome of looking up every destination board name."""

    found: list[dict] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)

    @property
    def requested(self) -> int:
        return len(self.found) + len(self.skipped)


class BoardResolver:
    """Turn free-text board names into single boards

    Args:
        client: Trello client used for searches
        chooser: Called with the searched name and 2..MAX_CANDIDATES candidate
                 boards when the template name is ambiguous; returns the
                 chosen index
    """

    def __init__(self, client: TrelloClient, chooser: Chooser):
        self.client = client
        self.chooser = chooser

    def resolve_template(self, name: str) -> dict:
        """Find exactly one template board by name

        Raises:
            BoardNotFoundError: If the search returns nothing
            TooManyBoardsError: If the search returns more than MAX_CANDIDATES
            BoardResolutionError: If the chooser returns an invalid index or
                                  input ends before a choice is made
        """
        candidates = self.client.search_boards(name)

        if not candidates:
            raise BoardNotFoundError(f"Could not find {name}", board_name=name)

        if len(candidates) > MAX_CANDIDATES:
            raise TooManyBoardsError(
                f"Too many boards called {name} ({len(candidates)} found)",
                board_name=name,
                candidates=candidates,
            )

        if len(candidates) == 1:
            return candidates[0]

        logger.debug(f"{len(candidates)} boards match '{name}', asking which one")
        try:
            index = self.chooser(name, candidates)
        except EOFError as e:
            raise BoardResolutionError(
                f"No board chosen for {name}: input ended", board_name=name, candidates=candidates
            ) from e
        if not 0 <= index < len(candidates):
            raise BoardResolutionError(
                f"Invalid selection {index} for {name}", board_name=name, candidates=candidates
            )
        return candidates[index]

    def find_destination(self, name: str) -> tuple[dict | None, str | None]:
        """Look up one destination board

        Returns:
            (board, None) when found, (None, reason) when it must be skipped
        """
        candidates = self.client.search_boards(name)

        if len(candidates) == 1:
            return candidates[0], None

        exact = [board for board in candidates if board.get("name") == name]
        if len(exact) == 1:
            return exact[0], None

        if not candidates:
            return None, "could not find board"
        return None, f"found {len(candidates)} with same name"

    def resolve_destinations(self, names: Iterable[str]) -> DestinationResolution:
        """Look up every destination board, skipping unresolvable names"""
        resolution = DestinationResolution()

        for name in names:
            board, reason = self.find_destination(name)
            if board is None:
                logger.warning(f"Skipping {name} - {reason}")
                resolution.skipped.append((name, reason or "unresolved"))
            else:
                resolution.found.append(board)

        return resolution
