"""
Match summaries from The Blue Alliance.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional

from services.errors import MatchFeedError


class CompLevel(str, Enum):
    QUAL = "qm"
    EIGHTH_FINAL = "ef"
    QUARTER_FINAL = "qf"
    SEMI_FINAL = "sf"
    FINAL = "f"


class Alliance(str, Enum):
    RED = "red"
    BLUE = "blue"


@dataclass(frozen=True)
class Match:
    """A single entry of /event/{key}/matches/simple."""
    key: str
    comp_level: CompLevel
    match_number: int
    winning_alliance: Optional[Alliance] = None
    event_key: Optional[str] = None
    time: Optional[int] = None
    predicted_time: Optional[int] = None
    actual_time: Optional[int] = None

    @property
    def is_finished(self) -> bool:
        return self.winning_alliance is not None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> 'Match':
        """
        Parse one match summary.

        Args:
            data: Decoded JSON object for a single match

        Raises:
            MatchFeedError: If a consumed field is missing or invalid
        """
        try:
            number = data["match_number"]
            if isinstance(number, bool) or not isinstance(number, int):
                raise ValueError(f"match_number {number!r}")
            # "" means no winner recorded yet
            winner = data.get("winning_alliance") or None
            return cls(
                key=str(data.get("key", "")),
                comp_level=CompLevel(data["comp_level"]),
                match_number=number,
                winning_alliance=Alliance(winner) if winner else None,
                event_key=data.get("event_key"),
                time=data.get("time"),
                predicted_time=data.get("predicted_time"),
                actual_time=data.get("actual_time"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MatchFeedError(f"malformed match summary: {e}") from e


def parse_matches(payload: Any) -> List[Match]:
    """Parse the full response body (a JSON array)."""
    if not isinstance(payload, list):
        raise MatchFeedError(f"expected a JSON array, got {type(payload).__name__}")
    return [Match.from_json(item) for item in payload]


def latest_completed_qual(matches: Iterable[Match]) -> Optional[int]:
    """
    Number of the highest qualification match that has a result.

    Returns:
        The match number, or None if no qualification match has finished
    """
    quals = sorted(
        (m for m in matches if m.comp_level is CompLevel.QUAL),
        key=lambda m: m.match_number,
        reverse=True,
    )
    for match in quals:
        if match.is_finished:
            return match.match_number
    return None
