"""Centralized constants for reprise.

Defaults for every tunable live here so the config layer and the pure
modules import from a single source of truth.
"""

from pathlib import Path

# ---------- Storage ----------
DEFAULT_DB_PATH = Path.home() / ".local/share/reprise/cards.db"
SCHEMA_VERSION = 1

# ---------- Config ----------
CONFIG_PATHS = [
    Path.home() / ".config/reprise/config.toml",
    Path.home() / ".reprise.toml",
]
ENV_PREFIX = "REPRISE_"

# ---------- Memory model ----------
DIFFICULTY_MIN = 1.0
DIFFICULTY_MAX = 10.0
SECONDS_PER_DAY = 86_400.0

# ---------- Statistics ----------
MATURE_INTERVAL_DAYS = 21.0
HISTOGRAM_BINS = 5
UPCOMING_WEEK_DAYS = 7
UPCOMING_MONTH_DAYS = 30

# ---------- Card source ----------
MARKDOWN_SUFFIXES = (".md", ".markdown")
