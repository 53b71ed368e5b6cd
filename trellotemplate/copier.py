"""Copy template lists and cards onto destination boards."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from trellotemplate.config import DEFAULT_MAX_PARALLEL_BOARDS, DEFAULT_SPACER_NAME
from trellotemplate.template_filter import sort_by_position
from trellotemplate.trello_client import DEFAULT_KEEP_FROM_SOURCE, TrelloClient

logger = logging.getLogger(__name__)


@dataclass
class ListCopyResult:
    """One template list copied to one board."""

    list_name: str
    source_list_id: str
    new_list_id: str
    expected_cards: int = 0
    copied_cards: int = 0

    @property
    def mismatch(self) -> bool:
        return self.copied_cards != self.expected_cards


@dataclass
class BoardCopyResult:
    """Everything that happened on one destination board."""

    board: dict
    spacer_list_id: str | None = None
    lists: list[ListCopyResult] = field(default_factory=list)
    list_id_map: dict[str, str] = field(default_factory=dict)
    failed_cards: int = 0
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def mismatches(self) -> list[ListCopyResult]:
        return [result for result in self.lists if result.mismatch]


class TemplateCopier:
    """Replicate template lists (and optionally cards) onto destination boards

    Each board is handled by one worker from a bounded pool. A worker only
    touches its own board and its own id map, so nothing is shared between
    workers except the client's rate limiter.

    Label policies for copied cards:
    - "migrate": use the destination label with the same name, drop the rest
    - "keep": pass the source label ids through unchanged
    - "drop": copy cards without labels

    Member policies:
    - "keep-existing": keep members who belong to the destination board
    - "drop": copy cards without members
    """

    def __init__(
        self,
        client: TrelloClient,
        copy_cards: bool = False,
        spacer_name: str = DEFAULT_SPACER_NAME,
        max_workers: int = DEFAULT_MAX_PARALLEL_BOARDS,
        label_policy: str = "migrate",
        member_policy: str = "keep-existing",
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self.client = client
        self.copy_cards = copy_cards
        self.spacer_name = spacer_name
        self.max_workers = max_workers
        self.label_policy = label_policy
        self.member_policy = member_policy
        self.cards_by_list: dict[str, list[dict]] = {}

    def prepare(self, template_lists: Sequence[dict]) -> None:
        """Fetch the cards of every template list once, before any worker starts."""
        self.cards_by_list = {}
        if not self.copy_cards:
            return

        for lst in template_lists:
            cards = self.client.get_list_cards(lst["id"])
            self.cards_by_list[lst["id"]] = sort_by_position(cards)
            logger.debug(f"Template list '{lst['name']}' has {len(cards)} cards")

    # ----- Label and member reconciliation -----

    def _label_ids(self, card: dict, board_labels: list[dict]) -> list[str] | None:
        # None leaves labels to keepFromSource
        if self.label_policy == "keep":
            return None
        if self.label_policy == "drop":
            return []

        mapped: list[str] = []
        for label in card.get("labels", []):
            same_name = [lbl for lbl in board_labels if lbl.get("name") == label.get("name")]
            same_colour = [lbl for lbl in same_name if lbl.get("color") == label.get("color")]
            # An unnamed label is identified by its colour alone
            if not label.get("name"):
                matches = same_colour
            else:
                matches = same_colour or same_name
            if matches and matches[0]["id"] not in mapped:
                mapped.append(matches[0]["id"])
        return mapped

    def _keep_from_source(self) -> str:
        if self.label_policy == "keep":
            return f"{DEFAULT_KEEP_FROM_SOURCE},labels"
        return DEFAULT_KEEP_FROM_SOURCE

    def _member_ids(self, card: dict, board_member_ids: set[str]) -> list[str]:
        if self.member_policy == "drop":
            return []
        return [member for member in card.get("idMembers", []) if member in board_member_ids]

    # ----- Per-board copy -----

    def copy_list(
        self,
        board: dict,
        template_list: dict,
        result: BoardCopyResult,
        board_labels: list[dict],
        board_member_ids: set[str],
    ) -> ListCopyResult:
        """Create one template list (and its cards) at the bottom of a board"""
        new_list = self.client.add_list(board["id"], template_list["name"], "bottom")
        result.list_id_map[template_list["id"]] = new_list["id"]

        list_result = ListCopyResult(
            list_name=template_list["name"],
            source_list_id=template_list["id"],
            new_list_id=new_list["id"],
        )
        if not self.copy_cards:
            return list_result

        cards = self.cards_by_list.get(template_list["id"], [])
        list_result.expected_cards = len(cards)

        for card in cards:
            try:
                self.client.add_card(
                    result.list_id_map[card.get("idList", template_list["id"])],
                    source_card_id=card["id"],
                    pos="bottom",
                    keep_from_source=self._keep_from_source(),
                    id_labels=self._label_ids(card, board_labels),
                    id_members=self._member_ids(card, board_member_ids),
                )
            except Exception as e:
                result.failed_cards += 1
                logger.warning(f"Failed to copy card '{card.get('name')}' to {board['name']}: {e}")

        list_result.copied_cards = len(self.client.get_list_cards(new_list["id"]))
        if list_result.mismatch:
            logger.warning(
                f"An error occurred while copying {template_list['name']} to {board['name']}. "
                f"{list_result.copied_cards} out of {list_result.expected_cards} were copied. "
                "Please manually fix"
            )
        return list_result

    def copy_to_board(
        self,
        board: dict,
        template_lists: Sequence[dict],
        result: BoardCopyResult | None = None,
    ) -> BoardCopyResult:
        """Add the spacer list, then every template list in position order

        Progress is recorded on ``result`` as it happens, so a caller that
        passes one in still sees what was created if the copy fails midway.
        """
        logger.info(f"🚀 Starting {board['name']}")
        if result is None:
            result = BoardCopyResult(board=board)

        spacer = self.client.add_list(board["id"], self.spacer_name, "bottom")
        result.spacer_list_id = spacer["id"]

        board_labels: list[dict] = []
        board_member_ids: set[str] = set()
        if self.copy_cards:
            if self.label_policy == "migrate":
                board_labels = self.client.get_board_labels(board["id"])
            if self.member_policy == "keep-existing":
                board_member_ids = {m["id"] for m in self.client.get_board_members(board["id"])}

        for template_list in sort_by_position(template_lists):
            result.lists.append(
                self.copy_list(board, template_list, result, board_labels, board_member_ids)
            )

        logger.info(f"✅ Finished {board['name']}")
        return result

    def _copy_isolated(self, board: dict, template_lists: Sequence[dict]) -> BoardCopyResult:
        result = BoardCopyResult(board=board)
        try:
            return self.copy_to_board(board, template_lists, result)
        except Exception as e:
            logger.error(
                f"❌ Copy to {board.get('name')} failed after {len(result.list_id_map)} lists: {e}"
            )
            result.error = e
            return result

    def copy_to_boards(
        self, boards: Sequence[dict], template_lists: Sequence[dict]
    ) -> list[BoardCopyResult]:
        """Copy to every board on a bounded worker pool

        A failure on one board is recorded in its result and does not stop
        the others.

        Returns:
            One result per board, in the order the boards were given
        """
        if not boards:
            return []

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [
                executor.submit(self._copy_isolated, board, template_lists) for board in boards
            ]
            return [future.result() for future in futures]
