"""Constants for the rankset module."""

from typing import Final


# Leading bytes of the legacy binary save format
BINARY_MAGIC: Final[bytes] = b"\xad\x2a"

# Counters are stored as unsigned 32-bit integers in both formats
U32_MAX: Final[int] = 2**32 - 1

# Short field tags used by the structured-text (JSON) format
TAG_NAME: Final[str] = "n"
TAG_WINS: Final[str] = "w"
TAG_VOTES: Final[str] = "v"
TAG_LOCKED: Final[str] = "l"

# Suffix appended to the display string of a locked entry
LOCKED_MARKER: Final[str] = " [L]"

# Probability that min_equal_pair tries equal_pair first
EQUAL_PAIR_PROBABILITY: Final[float] = 0.5
