"""Data models for the ranked set."""

import math
from dataclasses import dataclass
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from src.rankset.constants import (
    LOCKED_MARKER,
    TAG_LOCKED,
    TAG_NAME,
    TAG_VOTES,
    TAG_WINS,
    U32_MAX,
)


@dataclass(eq=False)
class Entry:
    """One ranked item with accumulated comparison counters.

    Two entries are equal iff their names are equal; the counters and the
    lock flag take no part in equality.

    Attributes:
        name: Identifying name of the item.
        wins: Number of comparisons won.
        votes: Number of comparisons participated in.
        locked: Whether the entry is excluded from pair selection.
    """

    name: str
    wins: int = 0
    votes: int = 0
    locked: bool = False

    @classmethod
    def from_name(cls, name: str) -> "Entry":
        """Create a fresh entry with no recorded comparisons."""
        return cls(name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entry):
            return NotImplemented
        return self.name == other.name

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        suffix = LOCKED_MARKER if self.locked else ""
        percentage = repr(self.percentage())
        return f"{self.name} - {self.wins}/{self.votes} - {percentage}%{suffix}"

    def reset(self) -> None:
        """Clear counters and the lock flag, keeping the name."""
        self.wins = 0
        self.votes = 0
        self.locked = False

    def percentage(self) -> float:
        """Win rate in percent.

        Returns:
            ``100 * wins / votes``, or NaN when no votes were recorded.
        """
        if self.votes == 0:
            return math.nan
        return self.wins * 100.0 / self.votes

    def compare_percentage(self, other: "Entry") -> int:
        """Compare win rates without floating point division.

        Cross multiplies ``wins * other.votes`` against
        ``other.wins * votes``. Zero-vote entries are not special-cased:
        their cross product is 0, so they compare equal to each other and
        to any entry without wins.

        Args:
            other: Entry to compare against.

        Returns:
            Negative, zero or positive like a classic ``cmp`` function.
        """
        ours = self.wins * other.votes
        theirs = other.wins * self.votes
        return (ours > theirs) - (ours < theirs)

    def record_result(self, won: bool) -> None:
        """Count one comparison, and a win if ``won`` is set."""
        self.votes += 1
        if won:
            self.wins += 1


class EntryRecord(BaseModel):
    """Serialized form of an Entry in the structured-text save format.

    Field tags are kept short (``n``, ``w``, ``v``, ``l``). Counters and the
    lock flag are optional on input so files written before the lock flag
    existed still load.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: Annotated[str, Field(alias=TAG_NAME, description="Entry name")]
    wins: Annotated[
        int, Field(ge=0, le=U32_MAX, alias=TAG_WINS, description="Wins")
    ] = 0
    votes: Annotated[
        int, Field(ge=0, le=U32_MAX, alias=TAG_VOTES, description="Votes")
    ] = 0
    locked: Annotated[bool, Field(alias=TAG_LOCKED, description="Lock flag")] = False

    @classmethod
    def from_entry(cls, entry: Entry) -> "EntryRecord":
        """Build a record from a live entry."""
        return cls(
            name=entry.name,
            wins=entry.wins,
            votes=entry.votes,
            locked=entry.locked,
        )

    def to_entry(self) -> Entry:
        """Build a live entry from this record."""
        return Entry(
            name=self.name,
            wins=self.wins,
            votes=self.votes,
            locked=self.locked,
        )
