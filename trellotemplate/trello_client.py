"""Trello API client with rate limiting and retry logic."""

from __future__ import annotations

import logging
import time
from typing import Any, cast

import requests

from trellotemplate.exceptions import (
    TrelloAPIError,
    TrelloAuthenticationError,
    TrelloNotFoundError,
    TrelloRateLimitError,
    TrelloServerError,
)
from trellotemplate.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

# Everything a copied card carries over except labels and members, which are
# reconciled against the destination board before the card is created.
DEFAULT_KEEP_FROM_SOURCE = "attachments,checklists,comments,customFields,due,start,stickers"

CARD_FIELDS = "name,pos,idList,idBoard,idLabels,idMembers,labels"


class TrelloClient:
    """Read and write Trello boards, lists, and cards with rate limiting

    A single client is created per run and handed to every component that
    talks to Trello. It is safe to share between copy worker threads: the
    rate limiter is locked and requests carry no per-call state.

    Trello API rate limits (per token):
    - 100 requests per 10 seconds = 10 req/sec sustained
    - 300 requests per 10 seconds per API key = 30 req/sec

    We use 10 req/sec with burst allowance of 10 for conservative usage.
    """

    BASE_URL = "https://api.trello.com/1"
    MAX_RETRIES = 3
    BASE_DELAY = 1.0
    TRANSIENT_STATUSES = frozenset({429, 500, 502, 503, 504})

    def __init__(self, api_key: str, token: str, rate_limiter: RateLimiter | None = None):
        if not api_key or not token:
            raise ValueError("api_key and token are required")

        self.api_key = api_key
        self.token = token
        self.rate_limiter = rate_limiter or RateLimiter(requests_per_second=10.0, burst_allowance=10)

    def _retry_statuses(self, method: str) -> frozenset[int]:
        # A rejected (429) write never reached Trello, so only that is safe to
        # repeat. A 5xx on POST may already have created the list or card.
        if method == "POST":
            return frozenset({429})
        return self.TRANSIENT_STATUSES

    def _request(self, method: str, endpoint: str, params: dict | None = None) -> Any:
        """Make authenticated request to Trello API with rate limiting and retry logic"""
        if not self.rate_limiter.acquire(timeout=30.0):
            raise RuntimeError("Rate limiter timeout - too many requests queued")

        url = f"{self.BASE_URL}/{endpoint}"
        auth_params = {"key": self.api_key, "token": self.token}
        if params:
            auth_params.update(params)

        retry_statuses = self._retry_statuses(method)
        last_exception: requests.RequestException | None = None

        for attempt in range(self.MAX_RETRIES):
            try:
                response = requests.request(method, url, params=auth_params, timeout=30)
                response.raise_for_status()
                return cast(Any, response.json())

            except requests.HTTPError as e:
                last_exception = e
                status_code = e.response.status_code if e.response is not None else 0
                response_text = e.response.text if e.response is not None else ""

                if status_code not in retry_statuses:
                    self._raise_for_status(endpoint, status_code, response_text, e)

                if attempt < self.MAX_RETRIES - 1:
                    delay = self.BASE_DELAY * (2**attempt)  # 1s, 2s, 4s
                    logger.debug(
                        f"HTTP {status_code} on {method} {endpoint}, retrying in {delay:.0f}s"
                    )
                    time.sleep(delay)

            except requests.RequestException as e:
                # Network errors, timeouts, etc.
                last_exception = e
                if method == "POST" or attempt == self.MAX_RETRIES - 1:
                    raise TrelloAPIError(
                        f"Network error on {method} {endpoint}: {str(e)}\n"
                        "Check your internet connection and try again.",
                        status_code=None,
                        response_text=None,
                    ) from e
                time.sleep(self.BASE_DELAY * (2**attempt))

        # All retries exhausted for transient HTTP errors
        if isinstance(last_exception, requests.HTTPError):
            response = last_exception.response
            status_code = response.status_code if response is not None else 0
            response_text = response.text if response is not None else ""

            if status_code == 429:
                raise TrelloRateLimitError(
                    f"Rate limit exceeded after {self.MAX_RETRIES} retry attempts.\n"
                    "Trello's API rate limit: 100 requests per 10 seconds.\n"
                    "Wait a few minutes and try again.",
                    status_code=status_code,
                    response_text=response_text,
                ) from last_exception
            raise TrelloServerError(
                f"Trello server error (HTTP {status_code}) persisted after "
                f"{self.MAX_RETRIES} retries.\n"
                "Trello's servers may be experiencing issues. Try again later.",
                status_code=status_code,
                response_text=response_text,
            ) from last_exception

        raise RuntimeError("Request failed after retries")

    @staticmethod
    def _raise_for_status(
        endpoint: str, status_code: int, response_text: str, cause: Exception
    ) -> None:
        if status_code == 401:
            raise TrelloAuthenticationError(
                "Trello credentials are invalid. Check TrelloApiKey and TrelloUserToken.\n"
                "Get credentials at: https://trello.com/power-ups/admin",
                status_code=status_code,
                response_text=response_text,
            ) from cause
        if status_code == 403:
            raise TrelloAuthenticationError(
                f"Access forbidden to resource: {endpoint}\n"
                "Your token may not have write access to this board.",
                status_code=status_code,
                response_text=response_text,
            ) from cause
        if status_code == 404:
            raise TrelloNotFoundError(
                f"Resource not found: {endpoint}",
                status_code=status_code,
                response_text=response_text,
            ) from cause
        if status_code >= 500:
            raise TrelloServerError(
                f"Trello server error (HTTP {status_code}) for {endpoint}",
                status_code=status_code,
                response_text=response_text,
            ) from cause
        raise TrelloAPIError(
            f"HTTP {status_code} error for {endpoint}: {response_text[:200]}",
            status_code=status_code,
            response_text=response_text,
        ) from cause

    def _paginated_request(self, endpoint: str, params: dict | None = None) -> list[dict]:
        """Make paginated GET requests to handle Trello's 1000-item limit

        Uses the ID of the last item as the 'before' parameter for the next
        page until a short page comes back.
        """
        all_items: list[dict] = []
        request_params = params.copy() if params else {}
        request_params["limit"] = 1000

        while True:
            page_items = self._request("GET", endpoint, request_params)

            if not isinstance(page_items, list):
                return cast(list[dict], page_items)

            if not page_items:
                break

            all_items.extend(page_items)

            if len(page_items) < 1000:
                break

            last_item_id = page_items[-1].get("id")
            if not last_item_id:
                break

            request_params["before"] = last_item_id

        return all_items

    # ----- Reads -----

    def authenticate(self) -> dict:
        """Exchange the API key and token for the authenticated member.

        Raises:
            TrelloAuthenticationError: If the credentials are rejected
        """
        return cast(dict, self._request("GET", "members/me", {"fields": "id,username,fullName"}))

    def search_boards(self, query: str, limit: int = 50) -> list[dict]:
        """Search boards visible to the token by name.

        Args:
            query: Free-text board name
            limit: Maximum number of boards Trello should return

        Returns:
            List of board dicts with id, name and url (may be empty)
        """
        result = self._request(
            "GET",
            "search",
            {
                "query": query,
                "modelTypes": "boards",
                "board_fields": "name,url",
                "boards_limit": limit,
                "partial": "false",
            },
        )
        return cast(list[dict], result.get("boards", []))

    def get_board(self, board_id: str) -> dict:
        """Get board info"""
        return cast(dict, self._request("GET", f"boards/{board_id}", {"fields": "name,url"}))

    def get_lists(self, board_id: str) -> list[dict]:
        """Get all open lists on a board"""
        return cast(
            list[dict],
            self._request(
                "GET", f"boards/{board_id}/lists", {"fields": "name,id,pos,idBoard"}
            ),
        )

    def get_list_cards(self, list_id: str) -> list[dict]:
        """Get all open cards in a list"""
        return cast(
            list[dict], self._request("GET", f"lists/{list_id}/cards", {"fields": CARD_FIELDS})
        )

    def get_board_cards(self, board_id: str) -> list[dict]:
        """Get all open cards on a board (supports pagination for >1000 cards)"""
        return self._paginated_request(f"boards/{board_id}/cards", {"fields": CARD_FIELDS})

    def get_board_labels(self, board_id: str) -> list[dict]:
        """Get every label defined on a board"""
        return cast(
            list[dict],
            self._request(
                "GET", f"boards/{board_id}/labels", {"fields": "name,color", "limit": 1000}
            ),
        )

    def get_board_members(self, board_id: str) -> list[dict]:
        """Get the members of a board"""
        return cast(
            list[dict],
            self._request("GET", f"boards/{board_id}/members", {"fields": "username,fullName"}),
        )

    # ----- Writes -----

    def add_list(self, board_id: str, name: str, pos: str | float = "bottom") -> dict:
        """Create a list on a board

        Args:
            board_id: Board receiving the list
            name: List name
            pos: "top", "bottom" or a positive float

        Returns:
            The created list
        """
        return cast(
            dict,
            self._request("POST", "lists", {"idBoard": board_id, "name": name, "pos": pos}),
        )

    def add_card(
        self,
        id_list: str,
        source_card_id: str | None = None,
        name: str | None = None,
        pos: str | float = "bottom",
        keep_from_source: str = DEFAULT_KEEP_FROM_SOURCE,
        id_labels: list[str] | None = None,
        id_members: list[str] | None = None,
    ) -> dict:
        """Create a card, either as a copy of an existing card or from a name

        When ``source_card_id`` is given Trello copies the card's content;
        ``keep_from_source`` picks which properties come along. Labels and
        members are passed explicitly so they can be remapped first.

        Returns:
            The created card
        """
        if not source_card_id and not name:
            raise ValueError("add_card requires source_card_id or name")

        params: dict[str, Any] = {"idList": id_list, "pos": pos}
        if source_card_id:
            params["idCardSource"] = source_card_id
            params["keepFromSource"] = keep_from_source
        if name:
            params["name"] = name
        if id_labels is not None:
            params["idLabels"] = ",".join(id_labels)
        if id_members is not None:
            params["idMembers"] = ",".join(id_members)

        return cast(dict, self._request("POST", "cards", params))

    def move_card_to_board(
        self,
        card_id: str,
        board_id: str,
        list_id: str,
        id_labels: list[str] | None = None,
        id_members: list[str] | None = None,
    ) -> dict:
        """Move a card to a list on another board

        Label and member ids must already be valid on the target board;
        Trello rejects ids it cannot resolve there.

        Returns:
            The updated card
        """
        params: dict[str, Any] = {"idBoard": board_id, "idList": list_id}
        params["idLabels"] = ",".join(id_labels or [])
        params["idMembers"] = ",".join(id_members or [])
        return cast(dict, self._request("PUT", f"cards/{card_id}", params))
