"""Discovers flashcards in Markdown files and derives their content identity."""

import hashlib
import logging
import re
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

import yaml

from reprise.domain.constants import MARKDOWN_SUFFIXES
from reprise.domain.models import Card

logger = logging.getLogger(__name__)

FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)


def card_identity(card_type: str, front: str, back: str) -> str:
    """SHA-256 of the normalized card content; equal content gives equal identity."""
    payload = "\x1f".join([card_type, front.strip(), back.strip()])
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def iter_markdown_files(root: Path) -> Iterator[Path]:
    """Yield Markdown files under `root` (or `root` itself), skipping hidden directories."""
    if root.is_file():
        if root.suffix.lower() in MARKDOWN_SUFFIXES:
            yield root
        return
    for path in sorted(root.rglob("*")):
        rel_parts = path.relative_to(root).parts
        if any(part.startswith(".") for part in rel_parts):
            continue
        if path.is_file() and path.suffix.lower() in MARKDOWN_SUFFIXES:
            yield path


def parse_frontmatter(md_text: str) -> dict[str, Any]:
    m = FRONTMATTER_RE.match(md_text)
    if not m:
        return {}
    raw = m.group(1).replace("\t", "  ")
    meta = yaml.safe_load(raw) or {}
    if not isinstance(meta, dict):
        raise yaml.YAMLError("frontmatter is not a mapping")
    return meta


def parse_cards(md_text: str, origin: Path) -> list[Card]:
    """
    Extract cards from the `cards:` list of a file's YAML frontmatter.

    Entries with `front`/`back` are basic cards; entries with `cloze` are
    cloze cards. Anything else is skipped with a warning.
    """
    meta = parse_frontmatter(md_text)
    entries = meta.get("cards") or []
    if not isinstance(entries, list):
        logger.warning(f"[cards] {origin}: 'cards' is not a list, skipping")
        return []

    cards: list[Card] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            logger.warning(f"[cards] {origin} #{index}: entry is not a mapping")
            continue

        if "cloze" in entry:
            card_type = "cloze"
            front = str(entry["cloze"])
            back = str(entry.get("back") or "")
        elif "front" in entry:
            card_type = "basic"
            front = str(entry["front"])
            back = str(entry.get("back") or "")
        else:
            logger.warning(f"[cards] {origin} #{index}: needs 'front' or 'cloze'")
            continue

        if not front.strip():
            logger.warning(f"[cards] {origin} #{index}: empty card")
            continue

        cards.append(
            Card(
                identity=card_identity(card_type, front, back),
                card_type=card_type,
                origin=origin,
                front=front.strip(),
                back=back.strip(),
            )
        )
    return cards


def load_known_cards(paths: Iterable[Path | str]) -> dict[str, Card]:
    """
    Build the known-card set from files and directories.

    Duplicate content collapses onto the first file it was seen in.

    Raises:
        FileNotFoundError: if a given path does not exist.
    """
    known: dict[str, Card] = {}
    for raw_path in paths:
        root = Path(raw_path)
        if not root.exists():
            raise FileNotFoundError(f"No such file or directory: {root}")

        for md_file in iter_markdown_files(root):
            try:
                text = md_file.read_text(encoding="utf-8")
                cards = parse_cards(text, md_file)
            except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
                logger.warning(f"[cards] Skipped {md_file}: {e}")
                continue

            for card in cards:
                if card.identity in known:
                    logger.debug(
                        f"[cards] Duplicate card in {md_file} "
                        f"(first seen in {known[card.identity].origin})"
                    )
                    continue
                known[card.identity] = card

    logger.debug(f"[cards] Found {len(known)} unique cards")
    return known
