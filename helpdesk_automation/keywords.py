"""
Keyword tables used by the request classifier.

Tables are built once at startup and never mutated. Category order
matters: on equal match counts the category listed first wins.
Priorities and intents are always scanned in a fixed precedence order,
whatever order a custom table lists them in.
"""

import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel

from .models import Category, Intent, Priority


logger = logging.getLogger(__name__)


class KeywordTableError(Exception):
    """Error while loading a custom keyword table."""
    pass


PRIORITY_PRECEDENCE = (Priority.CRITICAL, Priority.HIGH, Priority.MEDIUM, Priority.LOW)
INTENT_PRECEDENCE = (Intent.GREETING, Intent.CHECK_STATUS)


class KeywordTable(BaseModel):
    """
    Trigger substrings per category, priority and intent.

    Each section is an ordered tuple of (enum value, trigger substrings).
    """

    categories: tuple[tuple[Category, tuple[str, ...]], ...]
    priorities: tuple[tuple[Priority, tuple[str, ...]], ...]
    intents: tuple[tuple[Intent, tuple[str, ...]], ...]

    model_config = {"frozen": True}


DEFAULT_KEYWORD_TABLE = KeywordTable(
    categories=(
        (Category.PASSWORD_RESET, (
            "password", "reset", "forgot", "login", "signin", "access", "unlock", "locked",
        )),
        (Category.SOFTWARE_ISSUE, (
            "software", "application", "app", "program", "install", "update", "crash",
            "error", "bug",
        )),
        (Category.HARDWARE_ISSUE, (
            "hardware", "computer", "laptop", "mouse", "keyboard", "monitor", "printer",
            "broken",
        )),
        (Category.NETWORK_ISSUE, (
            "network", "internet", "wifi", "connection", "slow", "disconnect", "vpn",
        )),
        (Category.ACCOUNT_PROVISIONING, (
            "account", "user", "access", "permission", "create", "new user", "provision",
        )),
    ),
    priorities=(
        (Priority.CRITICAL, (
            "critical", "urgent", "emergency", "down", "outage", "broken", "not working",
        )),
        (Priority.HIGH, ("important", "asap", "soon", "blocking", "cannot work")),
        (Priority.MEDIUM, ("help", "issue", "problem")),
        (Priority.LOW, ("question", "how to", "when possible")),
    ),
    intents=(
        (Intent.GREETING, ("hello", "hi", "hey", "good morning", "good afternoon", "help")),
        (Intent.CHECK_STATUS, ("status", "check", "update", "ticket", "progress")),
    ),
)


def _parse_section(
    raw: Any,
    enum_type: type,
    section: str,
) -> Optional[list[tuple[Any, tuple[str, ...]]]]:
    """
    Parse one mapping of enum name -> keyword list.

    Unknown enum names and malformed keyword lists are skipped with a warning.
    Returns None when the section is absent so the caller can fall back.
    """
    if raw is None:
        return None
    if not isinstance(raw, dict):
        logger.warning(f"Keyword section '{section}' is not a mapping, using defaults")
        return None

    entries = []
    for name, keywords in raw.items():
        try:
            value = enum_type(str(name).strip().lower())
        except ValueError:
            logger.warning(f"Skipping unknown {section} entry '{name}'")
            continue

        if isinstance(keywords, str):
            keywords = [keywords]
        if not isinstance(keywords, list):
            logger.warning(f"Skipping {section} entry '{name}': keywords must be a list")
            continue

        cleaned = tuple(
            str(k).strip().lower() for k in keywords if k is not None and str(k).strip()
        )
        entries.append((value, cleaned))

    return entries


def _in_precedence(entries: list, precedence: tuple) -> tuple:
    by_value = dict(entries)
    return tuple((value, by_value[value]) for value in precedence if value in by_value)


def parse_keyword_table(content: str) -> KeywordTable:
    """
    Parse YAML content into a KeywordTable.

    Sections missing from the document keep the built-in defaults.

    Args:
        content: Raw YAML with optional ``categories``, ``priorities``
            and ``intents`` mappings.

    Returns:
        Parsed KeywordTable.

    Raises:
        KeywordTableError: If the YAML is invalid.
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise KeywordTableError(f"Invalid YAML: {e}") from e

    if not data:
        logger.warning("Empty keyword table, using defaults")
        return DEFAULT_KEYWORD_TABLE
    if not isinstance(data, dict):
        raise KeywordTableError("Keyword table must be a mapping at the top level")

    categories = _parse_section(data.get("categories"), Category, "category")
    priorities = _parse_section(data.get("priorities"), Priority, "priority")
    intents = _parse_section(data.get("intents"), Intent, "intent")

    table = KeywordTable(
        categories=(
            tuple(categories) if categories is not None
            else DEFAULT_KEYWORD_TABLE.categories
        ),
        priorities=(
            _in_precedence(priorities, PRIORITY_PRECEDENCE) if priorities is not None
            else DEFAULT_KEYWORD_TABLE.priorities
        ),
        intents=(
            _in_precedence(intents, INTENT_PRECEDENCE) if intents is not None
            else DEFAULT_KEYWORD_TABLE.intents
        ),
    )

    logger.info(
        f"Parsed keyword table: {len(table.categories)} categories, "
        f"{len(table.priorities)} priorities, {len(table.intents)} intents"
    )
    return table


def load_keyword_table(path: Optional[Path] = None) -> KeywordTable:
    """
    Load a keyword table from a YAML file, or the defaults when no path is given.

    Raises:
        KeywordTableError: If the file cannot be read or parsed.
    """
    if path is None:
        return DEFAULT_KEYWORD_TABLE

    logger.info(f"Loading keyword table from {path}")
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise KeywordTableError(f"Cannot read keyword table {path}: {e}") from e

    return parse_keyword_table(content)
