"""
Shared pytest fixtures for trellotemplate tests
"""
import itertools
import json
import logging
import threading
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logging() between tests so caplog sees package records"""
    yield
    logger = logging.getLogger("trellotemplate")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def fixtures_dir():
    """Return path to test fixtures directory"""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def template_board_fixture(fixtures_dir):
    """Load template board test fixture"""
    with open(fixtures_dir / "template_board.json") as f:
        return json.load(f)


@pytest.fixture
def config_data():
    """A valid configuration file body"""
    return {
        "TrelloApiKey": "test-key",
        "TrelloUserToken": "test-token",
        "TemplateBoard": "Sprint Template",
        "TargetListNames": ["Backlog", "Doing"],
        "IgnoreTargetLists": False,
        "DestinationBoardNames": ["Team A", "Team B"],
    }


@pytest.fixture
def config_file(tmp_path, config_data):
    """Write config_data to a temporary appsettings.json and return its path"""
    path = tmp_path / "appsettings.json"
    path.write_text(json.dumps(config_data))
    return path


class FakeTrelloClient:
    """
    In-memory stand-in for TrelloClient used by copier tests

    Records every list and card it creates. Cards listed in ``drop_cards``
    (by source card id) are silently not created, to simulate Trello losing
    a copy.
    """

    def __init__(self, template_cards=None, labels=None, members=None):
        self.template_cards = template_cards or {}
        self.labels = labels or {}
        self.members = members or {}
        self.created_lists = []  # (board_id, name, pos, new_id)
        self.created_cards = []  # dicts of add_card kwargs plus id_list
        self.cards_in_list = {}
        self.drop_cards = set()
        self.fail_boards = set()
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def get_list_cards(self, list_id):
        if list_id in self.template_cards:
            return list(self.template_cards[list_id])
        return list(self.cards_in_list.get(list_id, []))

    def get_board_labels(self, board_id):
        return list(self.labels.get(board_id, []))

    def get_board_members(self, board_id):
        return list(self.members.get(board_id, []))

    def add_list(self, board_id, name, pos="bottom"):
        if board_id in self.fail_boards:
            raise RuntimeError(f"board {board_id} is read-only")
        with self._lock:
            new_id = f"new_list_{next(self._ids)}"
            self.created_lists.append((board_id, name, pos, new_id))
            self.cards_in_list[new_id] = []
        return {"id": new_id, "name": name, "idBoard": board_id}

    def add_card(self, id_list, source_card_id=None, name=None, pos="bottom", **kwargs):
        with self._lock:
            record = {"id_list": id_list, "source_card_id": source_card_id, "pos": pos}
            record.update(kwargs)
            self.created_cards.append(record)
            if source_card_id in self.drop_cards:
                return {"id": None}
            card = {"id": f"new_card_{next(self._ids)}", "idList": id_list}
            self.cards_in_list[id_list].append(card)
        return card

    def lists_on(self, board_id):
        """Names of lists created on a board, in creation order"""
        return [name for board, name, _, _ in self.created_lists if board == board_id]


@pytest.fixture
def fake_client_factory():
    """Build a FakeTrelloClient"""
    return FakeTrelloClient
