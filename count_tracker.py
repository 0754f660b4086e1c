# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Ball/strike count for the active at-bat.

Four balls resolve to a walk, three strikes to a strikeout.  A foul adds a
strike only while the count is below two strikes.  On resolution the
tracker resets for the next batter and hands back an ``AutoResolution``
carrying the final count and the pitch sequence for the event row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from base_state import OutcomeResult, compute_outcome
from models import BaseRunners, Outcome

logger = logging.getLogger(__name__)

BALLS_FOR_WALK = 4
STRIKES_FOR_OUT = 3

# Pitch symbols
BALL = "B"
SWINGING_STRIKE = "S"
CALLED_STRIKE = "C"
FOUL = "F"


@dataclass(frozen=True)
class AutoResolution:
    """An at-bat the count decided on its own."""
    outcome: Outcome
    balls: int
    strikes: int
    pitch_sequence: str
    result: OutcomeResult


@dataclass
class CountTracker:
    balls: int = 0
    strikes: int = 0
    pitches: list[str] = field(default_factory=list)

    @property
    def pitch_sequence(self) -> str:
        return "".join(self.pitches)

    @property
    def pitch_count(self) -> int:
        return len(self.pitches)

    def reset(self) -> None:
        self.balls = 0
        self.strikes = 0
        self.pitches = []

    def ball(self, outs: int, runners: BaseRunners,
             batter_id: str | None = None) -> AutoResolution | None:
        self.pitches.append(BALL)
        if self.balls + 1 >= BALLS_FOR_WALK:
            return self._resolve(Outcome.WALK, BALLS_FOR_WALK, self.strikes,
                                 outs, runners, batter_id)
        self.balls += 1
        return None

    def strike(self, outs: int, runners: BaseRunners,
               batter_id: str | None = None,
               looking: bool = False) -> AutoResolution | None:
        self.pitches.append(CALLED_STRIKE if looking else SWINGING_STRIKE)
        if self.strikes + 1 >= STRIKES_FOR_OUT:
            outcome = Outcome.STRIKEOUT_LOOKING if looking else Outcome.STRIKEOUT_SWINGING
            return self._resolve(outcome, self.balls, STRIKES_FOR_OUT,
                                 outs, runners, batter_id)
        self.strikes += 1
        return None

    def foul(self) -> None:
        self.pitches.append(FOUL)
        if self.strikes < STRIKES_FOR_OUT - 1:
            self.strikes += 1

    def _resolve(self, outcome: Outcome, balls: int, strikes: int,
                 outs: int, runners: BaseRunners,
                 batter_id: str | None) -> AutoResolution:
        resolution = AutoResolution(
            outcome=outcome,
            balls=balls,
            strikes=strikes,
            pitch_sequence=self.pitch_sequence,
            result=compute_outcome(outs, runners, outcome, batter_id=batter_id),
        )
        logger.info("Count resolved at-bat: %s (%s-%s, %s)",
                    outcome.value, balls, strikes, resolution.pitch_sequence)
        self.reset()
        return resolution
