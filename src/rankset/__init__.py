"""Ranked set module for pairwise "which is better" voting.

This module provides the in-memory ranked collection: entries with win and
vote counters, pair selection strategies that pick the next comparison,
ordering by win percentage, and the JSON and legacy binary save formats.
"""

from src.rankset.errors import (
    DecodeError,
    EncodeError,
    FormatMismatchError,
    RankSetError,
)
from src.rankset.metrics import SelectionMetrics
from src.rankset.models import Entry, EntryRecord
from src.rankset.persistence import SaveFormat
from src.rankset.ranked_set import RankedSet
from src.rankset.selection import Pair, PairStrategy


__all__ = [
    "DecodeError",
    "EncodeError",
    "Entry",
    "EntryRecord",
    "FormatMismatchError",
    "Pair",
    "PairStrategy",
    "RankSetError",
    "RankedSet",
    "SaveFormat",
    "SelectionMetrics",
]
