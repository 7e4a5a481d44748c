import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

from reprise.application.card_source import card_identity
from reprise.domain.models import Card
from reprise.infrastructure.sqlite_store import SqliteCardStore

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _make_card(front: str, back: str = "answer", origin: str = "deck.md") -> Card:
    return Card(
        identity=card_identity("basic", front, back),
        card_type="basic",
        origin=Path(origin),
        front=front,
        back=back,
    )


def _known_set(*cards: Card) -> dict[str, Card]:
    return {card.identity: card for card in cards}


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def store(tmp_path):
    with SqliteCardStore(tmp_path / "cards.db") as s:
        yield s


@pytest.fixture
def mock_vault(tmp_path):
    """Creates a temporary directory holding two card files and one plain note."""
    d = tmp_path / "vault"
    d.mkdir()
    (d / "capitals.md").write_text(
        "---\n"
        "cards:\n"
        "  - front: Capital of France?\n"
        "    back: Paris\n"
        "  - front: Capital of Peru?\n"
        "    back: Lima\n"
        "---\n"
        "# Capitals\n",
        encoding="utf-8",
    )
    sub = d / "science"
    sub.mkdir()
    (sub / "chem.md").write_text(
        "---\n"
        "cards:\n"
        "  - cloze: Water is made of hydrogen and {{oxygen}}.\n"
        "---\n",
        encoding="utf-8",
    )
    (d / "notes.md").write_text("# Just notes\n", encoding="utf-8")
    return d


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def make_card():
    """Factory for basic cards with a content-derived identity."""
    return _make_card


@pytest.fixture
def known_set():
    """Builds a known-card mapping from cards."""
    return _known_set


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keeps the developer's own config file and REPRISE_* variables out of tests."""
    monkeypatch.setattr("reprise.application.config.CONFIG_PATHS", [])
    for name in list(os.environ):
        if name.startswith("REPRISE_"):
            monkeypatch.delenv(name)
