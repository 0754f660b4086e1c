# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Data models for the live game scoring engine."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Half(str, Enum):
    TOP = "top"
    BOTTOM = "bottom"

    @property
    def other(self) -> Half:
        return Half.BOTTOM if self is Half.TOP else Half.TOP


class Base(str, Enum):
    FIRST = "first"
    SECOND = "second"
    THIRD = "third"


BASE_ORDER: tuple[Base, ...] = (Base.FIRST, Base.SECOND, Base.THIRD)


class Destination(str, Enum):
    """Where a runner ends up when the operator adjusts a staged play."""
    FIRST = "first"
    SECOND = "second"
    THIRD = "third"
    HOME = "home"
    OUT = "out"

    @property
    def base(self) -> Base | None:
        if self in (Destination.HOME, Destination.OUT):
            return None
        return Base(self.value)


class Consensus(str, Enum):
    PENDING = "pending"
    AGREED = "agreed"
    DISPUTED = "disputed"
    FLAGGED = "flagged"
    RESOLVED = "resolved"


class GameStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    FINAL = "final"
    CANCELLED = "cancelled"


class OutcomeCategory(str, Enum):
    HIT = "hit"
    OUT = "out"
    WALK = "walk"
    OTHER = "other"
    BASERUNNING = "baserunning"


class Outcome(str, Enum):
    # hits
    SINGLE = "single"
    DOUBLE = "double"
    TRIPLE = "triple"
    HOME_RUN = "home_run"
    # outs
    GROUNDOUT = "groundout"
    FLYOUT = "flyout"
    LINEOUT = "lineout"
    POP_OUT = "pop_out"
    STRIKEOUT_SWINGING = "strikeout_swinging"
    STRIKEOUT_LOOKING = "strikeout_looking"
    DOUBLE_PLAY = "double_play"
    TRIPLE_PLAY = "triple_play"
    # walks
    WALK = "walk"
    INTENTIONAL_WALK = "intentional_walk"
    HIT_BY_PITCH = "hit_by_pitch"
    # other
    ERROR = "error"
    FIELDERS_CHOICE = "fielders_choice"
    SACRIFICE_FLY = "sacrifice_fly"
    SACRIFICE_BUNT = "sacrifice_bunt"
    # baserunning
    STOLEN_BASE = "stolen_base"
    CAUGHT_STEALING = "caught_stealing"
    WILD_PITCH = "wild_pitch"
    PASSED_BALL = "passed_ball"
    BALK = "balk"
    PICKED_OFF = "picked_off"

    @property
    def category(self) -> OutcomeCategory:
        return OUTCOME_CATEGORIES[self]

    @property
    def label(self) -> str:
        return OUTCOME_LABELS[self]


HIT_OUTCOMES = (Outcome.SINGLE, Outcome.DOUBLE, Outcome.TRIPLE, Outcome.HOME_RUN)
OUT_OUTCOMES = (
    Outcome.GROUNDOUT, Outcome.FLYOUT, Outcome.LINEOUT, Outcome.POP_OUT,
    Outcome.STRIKEOUT_SWINGING, Outcome.STRIKEOUT_LOOKING,
    Outcome.DOUBLE_PLAY, Outcome.TRIPLE_PLAY,
)
WALK_OUTCOMES = (Outcome.WALK, Outcome.INTENTIONAL_WALK, Outcome.HIT_BY_PITCH)
OTHER_OUTCOMES = (
    Outcome.ERROR, Outcome.FIELDERS_CHOICE,
    Outcome.SACRIFICE_FLY, Outcome.SACRIFICE_BUNT,
)
BASERUNNING_OUTCOMES = (
    Outcome.STOLEN_BASE, Outcome.CAUGHT_STEALING, Outcome.WILD_PITCH,
    Outcome.PASSED_BALL, Outcome.BALK, Outcome.PICKED_OFF,
)

OUTCOME_CATEGORIES: dict[Outcome, OutcomeCategory] = {
    **{o: OutcomeCategory.HIT for o in HIT_OUTCOMES},
    **{o: OutcomeCategory.OUT for o in OUT_OUTCOMES},
    **{o: OutcomeCategory.WALK for o in WALK_OUTCOMES},
    **{o: OutcomeCategory.OTHER for o in OTHER_OUTCOMES},
    **{o: OutcomeCategory.BASERUNNING for o in BASERUNNING_OUTCOMES},
}

OUTCOME_LABELS: dict[Outcome, str] = {
    Outcome.SINGLE: "1B Single",
    Outcome.DOUBLE: "2B Double",
    Outcome.TRIPLE: "3B Triple",
    Outcome.HOME_RUN: "HR Home Run",
    Outcome.GROUNDOUT: "Groundout",
    Outcome.FLYOUT: "Flyout",
    Outcome.LINEOUT: "Lineout",
    Outcome.POP_OUT: "Pop Out",
    Outcome.STRIKEOUT_SWINGING: "K Strikeout",
    Outcome.STRIKEOUT_LOOKING: "Ꝁ Called Strike 3",
    Outcome.WALK: "BB Walk",
    Outcome.INTENTIONAL_WALK: "IBB",
    Outcome.HIT_BY_PITCH: "HBP",
    Outcome.ERROR: "Error",
    Outcome.FIELDERS_CHOICE: "Fielder's Choice",
    Outcome.SACRIFICE_FLY: "Sac Fly",
    Outcome.SACRIFICE_BUNT: "Sac Bunt",
    Outcome.DOUBLE_PLAY: "Double Play",
    Outcome.TRIPLE_PLAY: "Triple Play",
    Outcome.STOLEN_BASE: "SB Stolen Base",
    Outcome.CAUGHT_STEALING: "CS",
    Outcome.WILD_PITCH: "WP",
    Outcome.PASSED_BALL: "PB",
    Outcome.BALK: "Balk",
    Outcome.PICKED_OFF: "Picked Off",
}

# Scorebook position numbers
FIELD_POSITION_ABBREV: dict[int, str] = {
    1: "P", 2: "C", 3: "1B", 4: "2B", 5: "3B",
    6: "SS", 7: "LF", 8: "CF", 9: "RF",
}
PITCHER_POSITION = 1
OUTFIELD_ZONES = frozenset({7, 8, 9})

# Outcomes offered when the operator taps a zone of the field diagram
FIELD_ZONE_OPTIONS: dict[int, tuple[Outcome, ...]] = {
    1: (Outcome.GROUNDOUT, Outcome.LINEOUT, Outcome.SACRIFICE_BUNT,
        Outcome.BALK, Outcome.ERROR),
    2: (Outcome.STRIKEOUT_SWINGING, Outcome.STRIKEOUT_LOOKING, Outcome.WALK,
        Outcome.HIT_BY_PITCH, Outcome.PASSED_BALL, Outcome.WILD_PITCH,
        Outcome.POP_OUT, Outcome.ERROR),
    3: (Outcome.GROUNDOUT, Outcome.SINGLE, Outcome.DOUBLE, Outcome.ERROR,
        Outcome.LINEOUT),
    4: (Outcome.GROUNDOUT, Outcome.SINGLE, Outcome.DOUBLE, Outcome.ERROR,
        Outcome.LINEOUT),
    5: (Outcome.GROUNDOUT, Outcome.SINGLE, Outcome.DOUBLE, Outcome.ERROR,
        Outcome.LINEOUT),
    6: (Outcome.GROUNDOUT, Outcome.SINGLE, Outcome.DOUBLE, Outcome.ERROR,
        Outcome.LINEOUT, Outcome.FIELDERS_CHOICE),
    7: (Outcome.FLYOUT, Outcome.SINGLE, Outcome.DOUBLE, Outcome.TRIPLE,
        Outcome.HOME_RUN, Outcome.ERROR, Outcome.SACRIFICE_FLY),
    8: (Outcome.FLYOUT, Outcome.SINGLE, Outcome.DOUBLE, Outcome.TRIPLE,
        Outcome.HOME_RUN, Outcome.ERROR, Outcome.SACRIFICE_FLY),
    9: (Outcome.FLYOUT, Outcome.SINGLE, Outcome.DOUBLE, Outcome.TRIPLE,
        Outcome.HOME_RUN, Outcome.ERROR, Outcome.SACRIFICE_FLY),
}


def outcome_category(outcome: Outcome | str) -> OutcomeCategory:
    return OUTCOME_CATEGORIES[Outcome(outcome)]


def is_batting_outcome(outcome: Outcome | str) -> bool:
    """True for plate-appearance outcomes; False for pure baserunning plays."""
    return outcome_category(outcome) is not OutcomeCategory.BASERUNNING


# ---------------------------------------------------------------------------
# Base occupancy
# ---------------------------------------------------------------------------

class BaseRunners(BaseModel):
    """Three named bases, each holding a player id or nothing."""
    model_config = ConfigDict(frozen=True)

    first: Optional[str] = None
    second: Optional[str] = None
    third: Optional[str] = None

    @model_validator(mode="after")
    def _one_slot_per_player(self) -> BaseRunners:
        ids = [p for p in (self.first, self.second, self.third) if p]
        if len(ids) != len(set(ids)):
            raise ValueError("a player can occupy only one base")
        return self

    @classmethod
    def empty(cls) -> BaseRunners:
        return cls()

    def get(self, base: Base) -> str | None:
        return getattr(self, base.value)

    def with_base(self, base: Base, player_id: str | None) -> BaseRunners:
        return self.model_copy(update={base.value: player_id})

    def occupied(self) -> list[Base]:
        return [b for b in BASE_ORDER if self.get(b)]

    def count(self) -> int:
        return len(self.occupied())

    def is_empty(self) -> bool:
        return not self.occupied()

    def lead_base(self) -> Base | None:
        """Base of the lead runner: third, else second, else first."""
        for base in reversed(BASE_ORDER):
            if self.get(base):
                return base
        return None

    def base_of(self, player_id: str) -> Base | None:
        for base in BASE_ORDER:
            if self.get(base) == player_id:
                return base
        return None

    def bases_string(self) -> str:
        """Return base state string like '110' for runners on 1st and 2nd."""
        return "".join("1" if self.get(b) else "0" for b in BASE_ORDER)


# ---------------------------------------------------------------------------
# Game events
# ---------------------------------------------------------------------------

class EventPayload(BaseModel):
    """What a scorekeeper submits to the log service for one play."""
    inning: int = Field(ge=1)
    inning_half: Half
    batter_id: Optional[str] = None
    pitcher_id: Optional[str] = None
    outcome: Outcome
    outs_before: int = Field(ge=0, le=3)
    outs_after: int = Field(ge=0, le=3)
    runs_scored: int = Field(ge=0, default=0)
    runners_before: BaseRunners = Field(default_factory=BaseRunners)
    runners_after: BaseRunners = Field(default_factory=BaseRunners)
    hit_location: Optional[int] = Field(default=None, ge=1, le=9)
    fielding_sequence: Optional[str] = None
    balls: Optional[int] = Field(default=None, ge=0, le=4)
    strikes: Optional[int] = Field(default=None, ge=0, le=3)
    pitch_sequence: Optional[str] = None
    notes: Optional[str] = None
    recorded_by: Optional[str] = None


class GameEvent(EventPayload):
    """One committed play.  Immutable; undo produces a soft-deleted copy."""
    model_config = ConfigDict(frozen=True)

    id: str
    game_id: str
    sequence_number: int = Field(ge=1)
    is_deleted: bool = False
    consensus: Consensus = Consensus.PENDING
    partner_outcome: Optional[Outcome] = None

    @property
    def half_key(self) -> tuple[int, Half]:
        return (self.inning, self.inning_half)


# ---------------------------------------------------------------------------
# Lineups
# ---------------------------------------------------------------------------

class GameLineupEntry(BaseModel):
    player_id: str
    team_id: str
    player_name: str = ""
    jersey_number: Optional[int] = None
    batting_order: Optional[int] = Field(default=None, ge=1)
    fielding_position: Optional[int] = Field(default=None, ge=1, le=9)
    entered_inning: Optional[int] = None
    exited_inning: Optional[int] = None

    @property
    def is_exited(self) -> bool:
        return self.exited_inning is not None

    @property
    def is_starter(self) -> bool:
        """Active and holding a fielding position."""
        return not self.is_exited and self.fielding_position is not None

    @property
    def is_bench(self) -> bool:
        return not self.is_exited and self.fielding_position is None

    @property
    def display_name(self) -> str:
        return self.player_name or self.player_id


def batting_starters(lineup: list[GameLineupEntry]) -> list[GameLineupEntry]:
    """Active starters sorted by batting order."""
    starters = [e for e in lineup if e.is_starter]
    return sorted(starters, key=lambda e: (e.batting_order or 99, e.player_id))


# ---------------------------------------------------------------------------
# Game summary and state feed
# ---------------------------------------------------------------------------

class GameSummary(BaseModel):
    game_id: str
    home_team_id: str
    away_team_id: str
    home_team_name: str = "Home"
    away_team_name: str = "Away"
    home_score: int = 0
    away_score: int = 0
    status: GameStatus = GameStatus.IN_PROGRESS
    inning: int = Field(default=1, ge=1)
    inning_half: Half = Half.TOP
    allow_reentry: bool = False

    def batting_team_id(self, half: Half) -> str:
        return self.away_team_id if half is Half.TOP else self.home_team_id

    def fielding_team_id(self, half: Half) -> str:
        return self.home_team_id if half is Half.TOP else self.away_team_id


class GameSnapshot(BaseModel):
    """Everything the state feed delivers for one game."""
    revision: int = 0  # bumped by every change to the log or lineups
    summary: GameSummary
    events: list[GameEvent] = Field(default_factory=list)
    home_lineup: list[GameLineupEntry] = Field(default_factory=list)
    away_lineup: list[GameLineupEntry] = Field(default_factory=list)

    def batting_lineup(self, half: Half) -> list[GameLineupEntry]:
        return self.away_lineup if half is Half.TOP else self.home_lineup

    def fielding_lineup(self, half: Half) -> list[GameLineupEntry]:
        return self.home_lineup if half is Half.TOP else self.away_lineup

    def lineup_for_team(self, team_id: str) -> list[GameLineupEntry]:
        if team_id == self.summary.home_team_id:
            return self.home_lineup
        if team_id == self.summary.away_team_id:
            return self.away_lineup
        raise KeyError(team_id)

    def player_names(self) -> dict[str, str]:
        return {e.player_id: e.display_name
                for e in [*self.home_lineup, *self.away_lineup]}
