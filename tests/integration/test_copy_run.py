"""
Integration tests for a full template copy run

Drives cli.run() against a fake Trello API served through the `responses`
library, so the real TrelloClient, resolver and copier are exercised
without network access.
"""

import itertools
import json
import logging
import re
import sys
import threading
from pathlib import Path
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import pytest
import responses

# Add parent directory to path to import trellotemplate module
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from trellotemplate import BoardNotFoundError, TrelloAuthenticationError
from trellotemplate.cli import run

API = "https://api.trello.com/1"


class FakeTrelloAPI:
    """Minimal stateful Trello API backed by the template_board fixture"""

    def __init__(self, fixture, search_results):
        self.fixture = fixture
        self.search_results = search_results
        self.created_lists = []  # (idBoard, name, pos, id)
        self.created_cards = []  # query params of each POST /cards
        self.cards_in_list = {}
        self.lose_cards = False  # report one card per new list, as if copies went missing
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    @staticmethod
    def params(request):
        query = parse_qs(urlparse(request.url).query, keep_blank_values=True)
        return {key: values[0] for key, values in query.items()}

    def register(self, mock):
        destination = self.fixture["destination"]
        dest_id = destination["board"]["id"]

        mock.add(responses.GET, f"{API}/members/me", json=self.fixture["member"])
        mock.add(
            responses.GET, f"{API}/boards/{self.fixture['board']['id']}", json=self.fixture["board"]
        )
        mock.add(
            responses.GET,
            f"{API}/boards/{self.fixture['board']['id']}/lists",
            json=self.fixture["board"]["lists"],
        )
        mock.add(responses.GET, f"{API}/boards/{dest_id}/labels", json=destination["labels"])
        mock.add(responses.GET, f"{API}/boards/{dest_id}/members", json=destination["members"])
        mock.add_callback(responses.GET, f"{API}/search", callback=self.search)
        mock.add_callback(responses.POST, f"{API}/lists", callback=self.add_list)
        mock.add_callback(responses.POST, f"{API}/cards", callback=self.add_card)
        mock.add_callback(
            responses.GET, re.compile(rf"{API}/lists/[^/]+/cards"), callback=self.list_cards
        )

    def search(self, request):
        query = self.params(request)["query"]
        return (200, {}, json.dumps({"boards": self.search_results.get(query, [])}))

    def add_list(self, request):
        params = self.params(request)
        with self._lock:
            new_id = f"new_list_{next(self._ids)}"
            self.created_lists.append((params["idBoard"], params["name"], params["pos"], new_id))
            self.cards_in_list[new_id] = []
        return (200, {}, json.dumps({"id": new_id, "name": params["name"]}))

    def add_card(self, request):
        params = self.params(request)
        with self._lock:
            new_id = f"new_card_{next(self._ids)}"
            self.created_cards.append(params)
            self.cards_in_list[params["idList"]].append({"id": new_id})
        return (200, {}, json.dumps({"id": new_id, "idList": params["idList"]}))

    def list_cards(self, request):
        list_id = urlparse(request.url).path.split("/")[-2]
        cards = self.fixture["cards"].get(list_id)
        if cards is None:
            cards = self.cards_in_list.get(list_id, [])
            if self.lose_cards:
                cards = cards[:1]
        return (200, {}, json.dumps(cards))

    def list_names(self, board_id):
        return [name for board, name, _, _ in self.created_lists if board == board_id]


@pytest.fixture
def settings(tmp_path, config_data, monkeypatch):
    """Write a configuration file; returns a function taking overrides"""
    monkeypatch.delenv("TRELLO_API_KEY", raising=False)
    monkeypatch.delenv("TRELLO_TOKEN", raising=False)

    def write(**overrides):
        data = dict(config_data)
        data.update(overrides)
        path = tmp_path / "appsettings.json"
        path.write_text(json.dumps(data))
        return str(path)

    return write


@pytest.fixture
def api(template_board_fixture):
    """Serve the fake API; Team A resolves, Team B does not"""
    search_results = {
        "Sprint Template": [template_board_fixture["board"]],
        "Team A": [template_board_fixture["destination"]["board"]],
        "Team B": [],
    }
    fake = FakeTrelloAPI(template_board_fixture, search_results)
    with (
        responses.RequestsMock(assert_all_requests_are_fired=False) as mock,
        patch("trellotemplate.rate_limiter.RateLimiter.acquire", return_value=True),
        patch("trellotemplate.cli.console.confirm", return_value=True),
    ):
        fake.register(mock)
        yield fake


class TestCopyRun:
    """End-to-end copy runs"""

    def test_copies_named_lists_after_spacer(self, api, settings):
        """Should create the spacer, then Backlog and Doing, on Team A only"""
        assert run(settings()) == 0

        assert api.list_names("dest_a") == ["New Lists ->", "Backlog", "Doing"]
        assert {board for board, _, _, _ in api.created_lists} == {"dest_a"}
        assert all(pos == "bottom" for _, _, pos, _ in api.created_lists)
        assert api.created_cards == []

    def test_ignore_mode_copies_all_but_named(self, api, settings):
        """Should copy every list except the named ones"""
        assert run(settings(TargetListNames=["Doing"], IgnoreTargetLists=True)) == 0

        assert api.list_names("dest_a") == ["New Lists ->", "Backlog", "Done"]

    def test_copies_cards_with_reconciled_labels_and_members(self, api, settings):
        """Should copy cards in position order, migrating labels and members"""
        assert run(settings(CopyCards=True)) == 0

        backlog_id = next(
            new_id for _, name, _, new_id in api.created_lists if name == "Backlog"
        )
        assert [card["idCardSource"] for card in api.created_cards] == ["card_b1", "card_b2"]
        assert all(card["idList"] == backlog_id for card in api.created_cards)

        first, second = api.created_cards
        assert first["idLabels"] == "dlabel_urgent"
        assert first["idMembers"] == "member_me"
        assert second["idLabels"] == ""
        assert second["idMembers"] == ""
        assert "labels" not in first["keepFromSource"]

    def test_count_mismatch_is_reported(self, api, settings, caplog):
        """Should warn when Trello reports fewer cards than were sent"""
        api.lose_cards = True

        with caplog.at_level(logging.WARNING, logger="trellotemplate"):
            assert run(settings(CopyCards=True)) == 0

        assert "copying Backlog to Team A. 1 out of 2 were copied" in caplog.text

    def test_declined_run_mutates_nothing(self, api, settings):
        """Should not create anything when the confirmation is declined"""
        with patch("trellotemplate.cli.console.confirm", return_value=False):
            assert run(settings()) == 0

        assert api.created_lists == []

    def test_missing_template_aborts(self, api, settings):
        """Should abort before any write when the template is not found"""
        with pytest.raises(BoardNotFoundError):
            run(settings(TemplateBoard="Nonexistent"))

        assert api.created_lists == []


class TestCopyRunFailures:
    """Runs that fail before copying"""

    @responses.activate
    def test_invalid_credentials(self, settings):
        """Should raise TrelloAuthenticationError on 401"""
        responses.add(responses.GET, f"{API}/members/me", body="invalid key", status=401)

        with pytest.raises(TrelloAuthenticationError):
            run(settings())
