# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Base-state calculator.

Maps (outs, runners, outcome, optional hit zone, optional victim base) to
the default (outs, runs, runners) after the play.  Pure and deterministic:
the same inputs always produce the same result, and nothing outside the
returned ``OutcomeResult`` is touched.

The result is a sane default, not a ruling.  Play staging lets the operator
override any field before the play is committed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from models import (
    BASE_ORDER,
    OUTFIELD_ZONES,
    Base,
    BaseRunners,
    Outcome,
)

MAX_OUTS = 3
HOME = 4  # base number meaning "scored"


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OutcomeResult:
    outs: int
    runs: int
    runners: BaseRunners


def clamp_outs(outs: int) -> int:
    return max(0, min(MAX_OUTS, outs))


# ---------------------------------------------------------------------------
# Rule groups
# ---------------------------------------------------------------------------

class RuleGroup(Enum):
    """One variant per rule of the calculator.  Every outcome maps to one."""
    SINGLE_OUT = "single_out"
    DOUBLE_PLAY = "double_play"
    TRIPLE_PLAY = "triple_play"
    HOME_RUN = "home_run"
    TRIPLE = "triple"
    DOUBLE = "double"
    SINGLE = "single"
    BATTER_REACHES = "batter_reaches"
    SACRIFICE_FLY = "sacrifice_fly"
    SACRIFICE_BUNT = "sacrifice_bunt"
    FORCED_WALK = "forced_walk"
    RUNNERS_ADVANCE = "runners_advance"
    RUNNER_OUT = "runner_out"


RULE_GROUPS: dict[Outcome, RuleGroup] = {
    Outcome.GROUNDOUT: RuleGroup.SINGLE_OUT,
    Outcome.FLYOUT: RuleGroup.SINGLE_OUT,
    Outcome.LINEOUT: RuleGroup.SINGLE_OUT,
    Outcome.POP_OUT: RuleGroup.SINGLE_OUT,
    Outcome.STRIKEOUT_SWINGING: RuleGroup.SINGLE_OUT,
    Outcome.STRIKEOUT_LOOKING: RuleGroup.SINGLE_OUT,
    Outcome.DOUBLE_PLAY: RuleGroup.DOUBLE_PLAY,
    Outcome.TRIPLE_PLAY: RuleGroup.TRIPLE_PLAY,
    Outcome.HOME_RUN: RuleGroup.HOME_RUN,
    Outcome.TRIPLE: RuleGroup.TRIPLE,
    Outcome.DOUBLE: RuleGroup.DOUBLE,
    Outcome.SINGLE: RuleGroup.SINGLE,
    Outcome.ERROR: RuleGroup.BATTER_REACHES,
    Outcome.FIELDERS_CHOICE: RuleGroup.BATTER_REACHES,
    Outcome.SACRIFICE_FLY: RuleGroup.SACRIFICE_FLY,
    Outcome.SACRIFICE_BUNT: RuleGroup.SACRIFICE_BUNT,
    Outcome.WALK: RuleGroup.FORCED_WALK,
    Outcome.INTENTIONAL_WALK: RuleGroup.FORCED_WALK,
    Outcome.HIT_BY_PITCH: RuleGroup.FORCED_WALK,
    Outcome.STOLEN_BASE: RuleGroup.RUNNERS_ADVANCE,
    Outcome.WILD_PITCH: RuleGroup.RUNNERS_ADVANCE,
    Outcome.PASSED_BALL: RuleGroup.RUNNERS_ADVANCE,
    Outcome.BALK: RuleGroup.RUNNERS_ADVANCE,
    Outcome.CAUGHT_STEALING: RuleGroup.RUNNER_OUT,
    Outcome.PICKED_OFF: RuleGroup.RUNNER_OUT,
}

_missing = set(Outcome) - set(RULE_GROUPS)
if _missing:
    raise TypeError(f"outcomes without a base-state rule: {sorted(o.value for o in _missing)}")


def rule_group(outcome: Outcome | str) -> RuleGroup:
    return RULE_GROUPS[Outcome(outcome)]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def advance_runners(
    runners: BaseRunners,
    bases: int,
    batter_id: str | None = None,
    batter_base: int | None = None,
) -> tuple[BaseRunners, int]:
    """Advance every runner ``bases`` bases and place the batter.

    A runner pushed past third scores.  ``batter_base`` is 1-3 for the base
    the batter lands on, or 4 (or more) when the batter scores; ``None``
    leaves the batter off the bases (baserunning plays, outs).

    Returns (runners_after, runs_scored).
    """
    slots: dict[int, str | None] = {1: None, 2: None, 3: None}
    runs = 0
    for number, base in enumerate(BASE_ORDER, start=1):
        player = runners.get(base)
        if not player:
            continue
        target = number + bases
        if target >= HOME:
            runs += 1
        else:
            slots[target] = player
    if batter_base is not None:
        if batter_base >= HOME:
            runs += 1
        else:
            slots[batter_base] = batter_id or "batter"
    after = BaseRunners(first=slots[1], second=slots[2], third=slots[3])
    return after, runs


def force_walk(runners: BaseRunners, batter_id: str | None) -> tuple[BaseRunners, int]:
    """Batter to first; runners move only when forced by an unbroken chain."""
    batter = batter_id or "batter"
    if not runners.first:
        return runners.with_base(Base.FIRST, batter), 0
    if not runners.second:
        after = BaseRunners(first=batter, second=runners.first, third=runners.third)
        return after, 0
    after = BaseRunners(first=batter, second=runners.first, third=runners.second)
    return after, 1 if runners.third else 0


def default_victim(runners: BaseRunners, victim: Base | None) -> Base | None:
    """The chosen victim if that base is occupied, else the lead runner."""
    if victim is not None and runners.get(victim):
        return victim
    return runners.lead_base()


# ---------------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------------

def compute_outcome(
    outs: int,
    runners: BaseRunners,
    outcome: Outcome | str,
    batter_id: str | None = None,
    hit_zone: int | None = None,
    dp_victim: Base | None = None,
) -> OutcomeResult:
    """Compute the default outs, runs and runners after ``outcome``.

    Args:
        outs: Outs before the play (0-3).
        runners: Base occupancy before the play.
        outcome: The play outcome.
        batter_id: Player id placed on base when the batter reaches.
        hit_zone: Scorebook zone (1-9) of a batted ball; only singles use it.
        dp_victim: Base cleared by a double play, caught stealing or
            pickoff.  Defaults to the lead runner.

    Returns:
        OutcomeResult with outs clamped to [0, 3].
    """
    outs = clamp_outs(outs)
    runs = 0
    after = runners

    match rule_group(outcome):
        case RuleGroup.SINGLE_OUT:
            outs += 1
        case RuleGroup.DOUBLE_PLAY:
            outs += 2
            victim = default_victim(runners, dp_victim)
            if victim is not None:
                after = runners.with_base(victim, None)
        case RuleGroup.TRIPLE_PLAY:
            outs += 3
        case RuleGroup.HOME_RUN:
            after, runs = advance_runners(runners, 4, batter_id, HOME)
        case RuleGroup.TRIPLE:
            after, runs = advance_runners(runners, 3, batter_id, 3)
        case RuleGroup.DOUBLE:
            after, runs = advance_runners(runners, 2, batter_id, 2)
        case RuleGroup.SINGLE:
            bases = 2 if hit_zone in OUTFIELD_ZONES else 1
            after, runs = advance_runners(runners, bases, batter_id, 1)
        case RuleGroup.BATTER_REACHES:
            after, runs = advance_runners(runners, 1, batter_id, 1)
        case RuleGroup.SACRIFICE_FLY:
            outs += 1
            if runners.third:
                after = runners.with_base(Base.THIRD, None)
                runs = 1
        case RuleGroup.SACRIFICE_BUNT:
            outs += 1
            after, runs = advance_runners(runners, 1)
        case RuleGroup.FORCED_WALK:
            after, runs = force_walk(runners, batter_id)
        case RuleGroup.RUNNERS_ADVANCE:
            after, runs = advance_runners(runners, 1)
        case RuleGroup.RUNNER_OUT:
            outs += 1
            victim = default_victim(runners, dp_victim)
            if victim is not None:
                after = runners.with_base(victim, None)

    return OutcomeResult(outs=clamp_outs(outs), runs=runs, runners=after)
