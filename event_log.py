# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Current state derived from the event log.

Nothing here stores state.  Outs and base occupancy are a fold over the
active (non-deleted) events of a half-inning, so the same event list always
derives the same state and undo is just a soft delete followed by a
re-derive.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from models import (
    BaseRunners,
    EventPayload,
    GameEvent,
    GameLineupEntry,
    Half,
    Outcome,
    batting_starters,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DerivedState:
    inning: int
    half: Half
    outs: int
    runners: BaseRunners
    active_count: int
    last_sequence: int

    @classmethod
    def empty(cls, inning: int = 1, half: Half = Half.TOP) -> DerivedState:
        return cls(inning=inning, half=half, outs=0, runners=BaseRunners(),
                   active_count=0, last_sequence=0)


def active_events(events: list[GameEvent]) -> list[GameEvent]:
    """Non-deleted events in sequence order."""
    return sorted((e for e in events if not e.is_deleted),
                  key=lambda e: e.sequence_number)


def current_half(events: list[GameEvent]) -> tuple[int, Half] | None:
    active = active_events(events)
    if not active:
        return None
    return active[-1].half_key


def derive_current_state(events: list[GameEvent], inning: int | None = None,
                         half: Half | None = None) -> DerivedState:
    """Fold the active events of one half-inning into outs and runners.

    Defaults to the half of the most recent active event.  An empty half (or
    a malformed event list) derives the empty state.
    """
    active = active_events(events)
    last_sequence = active[-1].sequence_number if active else 0

    if inning is None or half is None:
        latest = current_half(events)
        if latest is None:
            return DerivedState.empty(inning or 1, half or Half.TOP)
        inning = inning if inning is not None else latest[0]
        half = half if half is not None else latest[1]

    try:
        half = Half(half)
    except ValueError:
        logger.warning("Unknown half %r while deriving state; using empty state", half)
        return DerivedState(inning=inning, half=Half.TOP, outs=0,
                            runners=BaseRunners(), active_count=len(active),
                            last_sequence=last_sequence)

    in_half = [e for e in active if e.half_key == (inning, half)]
    if not in_half:
        return DerivedState(inning=inning, half=half, outs=0,
                            runners=BaseRunners(), active_count=len(active),
                            last_sequence=last_sequence)

    last = in_half[-1]
    return DerivedState(inning=inning, half=half, outs=last.outs_after,
                        runners=last.runners_after, active_count=len(active),
                        last_sequence=last_sequence)


def derive_batter_index(events: list[GameEvent], lineup: list[GameLineupEntry],
                        half: Half) -> int | None:
    """Batting-order index of the next batter for the side batting in ``half``.

    Plate appearances carry over between innings, so every active event with
    a batter id in any inning of that half counts.  Returns None when the
    lineup has no active starters.
    """
    starters = batting_starters(lineup)
    if not starters:
        return None
    appearances = sum(1 for e in active_events(events)
                      if e.inning_half is half and e.batter_id)
    return appearances % len(starters)


def current_batter(events: list[GameEvent], lineup: list[GameLineupEntry],
                   half: Half) -> GameLineupEntry | None:
    index = derive_batter_index(events, lineup, half)
    if index is None:
        return None
    return batting_starters(lineup)[index]


def current_pitcher(lineup: list[GameLineupEntry]) -> GameLineupEntry | None:
    """The fielding side's active pitcher, if one is assigned."""
    for entry in lineup:
        if entry.is_starter and entry.fielding_position == 1:
            return entry
    return None


def build_payload(state: DerivedState, outcome: Outcome, outs_after: int,
                  runs_scored: int, runners_after: BaseRunners,
                  batter_id: str | None = None, pitcher_id: str | None = None,
                  **extra) -> EventPayload:
    """Commit payload with the before-state taken from the derived state."""
    return EventPayload(
        inning=state.inning,
        inning_half=state.half,
        batter_id=batter_id,
        pitcher_id=pitcher_id,
        outcome=outcome,
        outs_before=state.outs,
        outs_after=outs_after,
        runs_scored=runs_scored,
        runners_before=state.runners,
        runners_after=runners_after,
        **extra,
    )
