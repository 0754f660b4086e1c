# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Play staging and the auto-commit countdown.

A selected outcome is either committed straight away (when it leaves the
operator nothing to decide) or staged.  A staged play carries the
calculator's defaults, which the operator may adjust: runs, outs, where
each runner ended up, the double-play victim, the fielding sequence and
notes.

Once the staged play needs no further input a countdown starts.  Every
adjustment restarts it at full length; reaching zero commits the play as
it stands; cancelling discards the play without side effects.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable

from base_state import RuleGroup, clamp_outs, compute_outcome, rule_group
from errors import ScoringValidationError
from models import (
    Base,
    BaseRunners,
    Destination,
    EventPayload,
    Half,
    Outcome,
    OutcomeCategory,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Skip rule
# ---------------------------------------------------------------------------

def should_skip_staging(outcome: Outcome | str, runners: BaseRunners) -> bool:
    """True when the outcome is unambiguous and should commit immediately.

    Home runs, triples and walk-category outcomes have exactly one sensible
    runner placement; with the bases empty there are no runners to place.
    """
    outcome = Outcome(outcome)
    if outcome in (Outcome.HOME_RUN, Outcome.TRIPLE):
        return True
    if outcome.category is OutcomeCategory.WALK:
        return True
    return runners.is_empty()


# ---------------------------------------------------------------------------
# Staged play
# ---------------------------------------------------------------------------

_BATTER_RETIRED = (OutcomeCategory.OUT,)
_RUNNER_RETIRED = (RuleGroup.DOUBLE_PLAY, RuleGroup.RUNNER_OUT)


def _base_destination(base: Base | None) -> Destination | None:
    return Destination(base.value) if base is not None else None


@dataclass
class StagedPlay:
    outcome: Outcome
    outs_before: int
    runners_before: BaseRunners
    batter_id: str | None = None
    hit_zone: int | None = None
    dp_victim: Base | None = None
    outs: int = 0
    runs: int = 0
    runners: BaseRunners = field(default_factory=BaseRunners)
    locations: dict[str, Destination | None] = field(default_factory=dict)
    fielding_sequence: str | None = None
    notes: str | None = None
    balls: int | None = None
    strikes: int | None = None
    pitch_sequence: str | None = None

    @classmethod
    def create(cls, outcome: Outcome | str, outs: int, runners: BaseRunners,
               batter_id: str | None = None, hit_zone: int | None = None,
               dp_victim: Base | None = None) -> StagedPlay:
        if hit_zone is not None and not 1 <= hit_zone <= 9:
            raise ScoringValidationError(f"hit zone must be 1-9, got {hit_zone}",
                                         field="hit_zone")
        play = cls(outcome=Outcome(outcome), outs_before=outs,
                   runners_before=runners, batter_id=batter_id,
                   hit_zone=hit_zone, dp_victim=dp_victim)
        play.recompute()
        return play

    @property
    def requires_input(self) -> bool:
        """A single with runners aboard needs its hit zone before committing."""
        return (self.outcome is Outcome.SINGLE and self.hit_zone is None
                and not self.runners_before.is_empty())

    def recompute(self) -> None:
        """Reset outs/runs/runners to the calculator defaults."""
        result = compute_outcome(self.outs_before, self.runners_before,
                                 self.outcome, batter_id=self.batter_id,
                                 hit_zone=self.hit_zone,
                                 dp_victim=self.dp_victim)
        self.outs = result.outs
        self.runs = result.runs
        self.runners = result.runners

        group = rule_group(self.outcome)
        locations: dict[str, Destination | None] = {}
        for base in self.runners_before.occupied():
            player = self.runners_before.get(base)
            on_base = result.runners.base_of(player)
            if on_base is not None:
                locations[player] = _base_destination(on_base)
            elif group in _RUNNER_RETIRED:
                locations[player] = Destination.OUT
            else:
                locations[player] = Destination.HOME
        if self.batter_id and self.batter_id not in locations:
            on_base = result.runners.base_of(self.batter_id)
            if on_base is not None:
                locations[self.batter_id] = _base_destination(on_base)
            elif group is RuleGroup.HOME_RUN:
                locations[self.batter_id] = Destination.HOME
            elif (self.outcome.category in _BATTER_RETIRED
                  or group in (RuleGroup.SACRIFICE_FLY, RuleGroup.SACRIFICE_BUNT)):
                locations[self.batter_id] = Destination.OUT
            else:
                locations[self.batter_id] = None
        self.locations = locations

    # -- adjustments ------------------------------------------------------

    def adjust_runs(self, delta: int) -> None:
        self.runs = max(0, self.runs + delta)

    def adjust_outs(self, delta: int) -> None:
        self.outs = clamp_outs(self.outs + delta)

    def move_runner(self, player_id: str, destination: Destination | str) -> bool:
        """Move one runner (or the batter) to a base, home, or out.

        Returns False when the runner is already there.  Moving onto a base
        held by another runner is rejected.
        """
        destination = Destination(destination)
        if player_id not in self.locations:
            raise ScoringValidationError(
                f"{player_id} is not a runner on this play", field="player_id")
        current = self.locations[player_id]
        if current is destination:
            return False

        target = destination.base
        if target is not None:
            holder = self.runners.get(target)
            if holder and holder != player_id:
                raise ScoringValidationError(
                    f"{target.value} is occupied by {holder}", field="destination")

        # leave the current spot
        if current is Destination.HOME:
            self.runs = max(0, self.runs - 1)
        elif current is Destination.OUT:
            self.outs = clamp_outs(self.outs - 1)
        elif current is not None:
            self.runners = self.runners.with_base(current.base, None)

        # arrive at the new one
        if destination is Destination.HOME:
            self.runs += 1
        elif destination is Destination.OUT:
            self.outs = clamp_outs(self.outs + 1)
        else:
            self.runners = self.runners.with_base(target, player_id)

        self.locations[player_id] = destination
        return True

    def set_dp_victim(self, base: Base | str) -> None:
        self.dp_victim = Base(base)
        self.recompute()

    def set_hit_zone(self, zone: int) -> None:
        if not 1 <= zone <= 9:
            raise ScoringValidationError(f"hit zone must be 1-9, got {zone}",
                                         field="hit_zone")
        self.hit_zone = zone
        self.recompute()

    def to_payload(self, inning: int, half: Half, pitcher_id: str | None = None,
                   recorded_by: str | None = None) -> EventPayload:
        return EventPayload(
            inning=inning,
            inning_half=half,
            batter_id=self.batter_id,
            pitcher_id=pitcher_id,
            outcome=self.outcome,
            outs_before=self.outs_before,
            outs_after=self.outs,
            runs_scored=self.runs,
            runners_before=self.runners_before,
            runners_after=self.runners,
            hit_location=self.hit_zone,
            fielding_sequence=self.fielding_sequence or None,
            balls=self.balls,
            strikes=self.strikes,
            pitch_sequence=self.pitch_sequence or None,
            notes=self.notes or None,
            recorded_by=recorded_by,
        )


# ---------------------------------------------------------------------------
# Countdown
# ---------------------------------------------------------------------------

class AutoCommitTimer:
    """Countdown of ``ticks`` ticks guarded by a monotonic reset token.

    Every ``start``/``reset``/``cancel`` bumps the token, so a tick
    scheduled under an older token is ignored.  With ``tick_seconds`` set,
    ticks are driven by a chain of ``threading.Timer`` objects; with
    ``None`` the owner calls ``tick()`` itself.  ``on_expire`` receives the
    token that expired.
    """

    def __init__(self, on_expire: Callable[[int], None], ticks: int = 5,
                 tick_seconds: float | None = None):
        self.on_expire = on_expire
        self.duration = ticks
        self.tick_seconds = tick_seconds
        self.remaining = 0
        self.token = 0
        self.running = False
        self._lock = threading.Lock()
        self._pending: threading.Timer | None = None

    def start(self) -> int:
        with self._lock:
            self._cancel_pending()
            self.token += 1
            self.remaining = self.duration
            self.running = True
            self._schedule(self.token)
            return self.token

    reset = start

    def cancel(self) -> None:
        with self._lock:
            self._cancel_pending()
            self.token += 1
            self.remaining = 0
            self.running = False

    def tick(self, token: int | None = None) -> bool:
        """Count down one tick.  Returns False for a stale or idle tick."""
        with self._lock:
            if not self.running or (token is not None and token != self.token):
                return False
            self.remaining -= 1
            expired = self.remaining <= 0
            token = self.token
            if expired:
                self.running = False
                self._pending = None
            else:
                self._schedule(self.token)
        if expired:
            self.on_expire(token)
        return True

    def expired(self, token: int) -> bool:
        """True while ``token`` is the countdown that last ran out."""
        with self._lock:
            return token == self.token and not self.running

    def _schedule(self, token: int) -> None:
        if self.tick_seconds is None:
            return
        timer = threading.Timer(self.tick_seconds, self.tick, args=(token,))
        timer.daemon = True
        self._pending = timer
        timer.start()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None


# ---------------------------------------------------------------------------
# Stager
# ---------------------------------------------------------------------------

class PlayStager:
    """Holds at most one staged play and its countdown."""

    def __init__(self, on_commit: Callable[[StagedPlay, int], None], ticks: int = 5,
                 tick_seconds: float | None = None):
        self.on_commit = on_commit
        self.staged: StagedPlay | None = None
        self.timer = AutoCommitTimer(self._expire, ticks=ticks,
                                     tick_seconds=tick_seconds)

    def stage(self, outcome: Outcome | str, outs: int, runners: BaseRunners,
              batter_id: str | None = None, hit_zone: int | None = None,
              dp_victim: Base | None = None) -> StagedPlay:
        self.timer.cancel()
        self.staged = StagedPlay.create(outcome, outs, runners, batter_id,
                                        hit_zone=hit_zone, dp_victim=dp_victim)
        self._restart()
        logger.debug("Staged %s (outs %s -> %s, runs %s)", self.staged.outcome.value,
                     outs, self.staged.outs, self.staged.runs)
        return self.staged

    def require(self) -> StagedPlay:
        if self.staged is None:
            raise ScoringValidationError("Select a play outcome", field="outcome")
        return self.staged

    def adjust_runs(self, delta: int) -> None:
        self.require().adjust_runs(delta)
        self._restart()

    def adjust_outs(self, delta: int) -> None:
        self.require().adjust_outs(delta)
        self._restart()

    def move_runner(self, player_id: str, destination: Destination | str) -> bool:
        moved = self.require().move_runner(player_id, destination)
        self._restart()
        return moved

    def set_dp_victim(self, base: Base | str) -> None:
        self.require().set_dp_victim(base)
        self._restart()

    def set_hit_zone(self, zone: int) -> None:
        self.require().set_hit_zone(zone)
        self._restart()

    def set_fielding_sequence(self, sequence: str) -> None:
        self.require().fielding_sequence = sequence
        self._restart()

    def set_notes(self, notes: str) -> None:
        self.require().notes = notes
        self._restart()

    def cancel(self) -> None:
        """Discard the staged play.  Nothing is committed."""
        self.timer.cancel()
        if self.staged is not None:
            logger.info("Discarded staged %s", self.staged.outcome.value)
        self.staged = None

    clear = cancel

    def pause(self) -> None:
        """Stop the countdown but keep the staged play."""
        self.timer.cancel()

    def _restart(self) -> None:
        if self.staged is not None and not self.staged.requires_input:
            self.timer.reset()
        else:
            self.timer.cancel()

    def _expire(self, token: int) -> None:
        staged = self.staged
        if staged is None:
            return
        logger.info("Auto-commit countdown expired for %s", staged.outcome.value)
        self.on_commit(staged, token)
