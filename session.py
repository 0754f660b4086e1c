# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Scoring session: one scorekeeper scoring one game.

The session is the only writer of its local state.  Calls from the
operator, the auto-commit timer thread, push callbacks and the background
refresh thread all go through one re-entrant lock.  The log service stays
authoritative: every commit, undo and lineup change is a synchronous round
trip, and the session re-derives from the log afterwards.  The lock is
released for the round trip itself; ``in_flight`` blocks other input
until the answer is back.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

import config
from count_tracker import AutoResolution, CountTracker
from errors import RemoteRejection, ScoringError, ScoringValidationError
from event_log import (
    DerivedState,
    active_events,
    current_batter,
    current_pitcher,
    derive_current_state,
)
from log_service import LogService
from models import (
    Base,
    BaseRunners,
    Destination,
    EventPayload,
    GameEvent,
    GameLineupEntry,
    GameSnapshot,
    Outcome,
    is_batting_outcome,
)
from play_staging import PlayStager, StagedPlay, should_skip_staging
from substitution import SubstitutionKind, SubstitutionWorkflow

logger = logging.getLogger(__name__)

MAX_CONSECUTIVE_ERRORS = 10  # background refresh stops after this many failures


@dataclass(frozen=True)
class SessionState:
    """What the scoring screen shows."""
    derived: DerivedState
    runners: BaseRunners
    batter: GameLineupEntry | None
    pitcher: GameLineupEntry | None
    home_score: int
    away_score: int
    balls: int
    strikes: int
    staged: StagedPlay | None = None

    @property
    def outs(self) -> int:
        return self.derived.outs


@dataclass
class RefreshStats:
    refreshes: int = 0
    consecutive_errors: int = 0
    error_log: list = field(default_factory=list)


class ScoringSession:
    def __init__(self, service: LogService, game_id: str, team_id: str | None = None,
                 ticks: int | None = None, manual_clock: bool = False,
                 recorded_by: str | None = None):
        self.service = service
        self.game_id = game_id
        self.team_id = team_id
        self.recorded_by = recorded_by
        self.count = CountTracker()
        self.stager = PlayStager(
            self._auto_commit,
            ticks=ticks or config.get_auto_commit_ticks(),
            tick_seconds=None if manual_clock else config.get_tick_seconds(),
        )
        self.runner_overrides: dict[Base, str] = {}
        self.in_flight = False
        self.last_error: ScoringError | None = None
        self.refresh_stats = RefreshStats()
        self._lock = threading.RLock()
        self._active_count = 0
        self._stop_refresh: threading.Event | None = None
        self._refresh_thread: threading.Thread | None = None
        self.snapshot: GameSnapshot = service.fetch_snapshot(game_id)
        self._sync_overrides()

    # -- feed -------------------------------------------------------------

    def apply_snapshot(self, snapshot: GameSnapshot) -> None:
        """Adopt ``snapshot`` unless it is older than the one already held."""
        with self._lock:
            if snapshot.revision < self.snapshot.revision:
                logger.debug("Ignoring stale snapshot r%d (holding r%d)",
                             snapshot.revision, self.snapshot.revision)
                return
            self.snapshot = snapshot
            self._sync_overrides()

    def apply_pushed_event(self, event: GameEvent) -> None:
        """Merge a pushed event.  Duplicates (same id) replace the old copy."""
        with self._lock:
            events = [e for e in self.snapshot.events if e.id != event.id]
            events.append(event)
            events.sort(key=lambda e: e.sequence_number)
            self.snapshot = self.snapshot.model_copy(update={"events": events})
            self._sync_overrides()

    def on_push(self, kind: str, item) -> None:
        """Listener for ``InMemoryLogService.subscribe``."""
        if kind == "event":
            self.apply_pushed_event(item)
        elif kind == "snapshot":
            self.apply_snapshot(item)

    def refresh(self) -> None:
        snapshot = self.service.fetch_snapshot(self.game_id)
        self.apply_snapshot(snapshot)

    def _sync_overrides(self) -> None:
        count = len(active_events(self.snapshot.events))
        if count != self._active_count:
            if self.runner_overrides:
                logger.debug("Log changed (%d -> %d events); clearing runner overrides",
                             self._active_count, count)
            self.runner_overrides.clear()
            self._active_count = count

    # -- reads ------------------------------------------------------------

    def derived(self) -> DerivedState:
        summary = self.snapshot.summary
        return derive_current_state(self.snapshot.events, summary.inning,
                                    summary.inning_half)

    def state(self) -> SessionState:
        with self._lock:
            derived = self.derived()
            runners = derived.runners
            for base, player_id in self.runner_overrides.items():
                runners = runners.with_base(base, player_id)
            summary = self.snapshot.summary
            return SessionState(
                derived=derived,
                runners=runners,
                batter=current_batter(self.snapshot.events,
                                      self.snapshot.batting_lineup(derived.half),
                                      derived.half),
                pitcher=current_pitcher(self.snapshot.fielding_lineup(derived.half)),
                home_score=summary.home_score,
                away_score=summary.away_score,
                balls=self.count.balls,
                strikes=self.count.strikes,
                staged=self.stager.staged,
            )

    def set_runner_override(self, base: Base | str, player_id: str | None) -> None:
        """Show a pinch runner on ``base`` until the log next changes."""
        with self._lock:
            base = Base(base)
            if player_id is None:
                self.runner_overrides.pop(base, None)
            else:
                self.runner_overrides[base] = player_id

    # -- count ------------------------------------------------------------

    def pitch_ball(self) -> GameEvent | None:
        with self._lock:
            self._check_idle()
            state = self.state()
            resolution = self.count.ball(state.outs, state.runners, self._batter_id(state))
            pending = self._stage_resolution(resolution, state)
        return self._send_commit(*pending) if pending else None

    def pitch_strike(self, looking: bool = False) -> GameEvent | None:
        with self._lock:
            self._check_idle()
            state = self.state()
            resolution = self.count.strike(state.outs, state.runners,
                                           self._batter_id(state), looking=looking)
            pending = self._stage_resolution(resolution, state)
        return self._send_commit(*pending) if pending else None

    def pitch_foul(self) -> None:
        with self._lock:
            self._check_idle()
            self.count.foul()

    def _stage_resolution(self, resolution: AutoResolution | None,
                          state: SessionState) -> tuple[StagedPlay, EventPayload] | None:
        if resolution is None:
            return None
        staged = self.stager.stage(resolution.outcome, state.outs, state.runners,
                                   self._batter_id(state))
        staged.balls = resolution.balls
        staged.strikes = resolution.strikes
        staged.pitch_sequence = resolution.pitch_sequence
        return self._prepare_commit()

    # -- staging ----------------------------------------------------------

    def select_outcome(self, outcome: Outcome | str,
                       hit_zone: int | None = None) -> StagedPlay | GameEvent:
        """Stage ``outcome``, or commit it at once when there is nothing to adjust.

        Returns the committed event in the second case.
        """
        with self._lock:
            self._check_idle()
            outcome = Outcome(outcome)
            state = self.state()
            # baserunning plays do not use up a plate appearance
            batter_id = self._batter_id(state) if is_batting_outcome(outcome) else None
            staged = self.stager.stage(outcome, state.outs, state.runners,
                                       batter_id, hit_zone=hit_zone)
            staged.balls = self.count.balls
            staged.strikes = self.count.strikes
            staged.pitch_sequence = self.count.pitch_sequence or None
            if not should_skip_staging(outcome, state.runners):
                return staged
            pending = self._prepare_commit()
        return self._send_commit(*pending)

    def adjust_runs(self, delta: int) -> None:
        with self._lock:
            self._check_idle()
            self.stager.adjust_runs(delta)

    def adjust_outs(self, delta: int) -> None:
        with self._lock:
            self._check_idle()
            self.stager.adjust_outs(delta)

    def move_runner(self, player_id: str, destination: Destination | str) -> bool:
        with self._lock:
            self._check_idle()
            return self.stager.move_runner(player_id, destination)

    def set_dp_victim(self, base: Base | str) -> None:
        with self._lock:
            self._check_idle()
            self.stager.set_dp_victim(base)

    def set_hit_zone(self, zone: int) -> None:
        with self._lock:
            self._check_idle()
            self.stager.set_hit_zone(zone)

    def set_fielding_sequence(self, sequence: str) -> None:
        with self._lock:
            self._check_idle()
            self.stager.set_fielding_sequence(sequence)

    def set_notes(self, notes: str) -> None:
        with self._lock:
            self._check_idle()
            self.stager.set_notes(notes)

    def cancel_staged(self) -> None:
        with self._lock:
            self.stager.cancel()

    def tick(self) -> bool:
        """Advance the countdown by one tick (manual clock)."""
        return self.stager.timer.tick()

    # -- commit / undo ----------------------------------------------------

    def commit_staged(self) -> GameEvent:
        with self._lock:
            pending = self._prepare_commit()
        return self._send_commit(*pending)

    def _prepare_commit(self) -> tuple[StagedPlay, EventPayload]:
        """Build the payload for the staged play and mark a commit in flight.

        Caller holds the lock.
        """
        self._check_idle()
        staged = self.stager.require()
        self.stager.pause()
        state = self.state()
        payload = staged.to_payload(
            state.derived.inning, state.derived.half,
            pitcher_id=state.pitcher.player_id if state.pitcher else None,
            recorded_by=self.recorded_by,
        )
        self.in_flight = True
        return staged, payload

    def _send_commit(self, staged: StagedPlay, payload: EventPayload) -> GameEvent:
        try:
            result = self.service.commit_play(self.game_id, payload)
        except Exception:
            with self._lock:
                self.in_flight = False
            raise
        with self._lock:
            self.in_flight = False
            if not result.ok:
                logger.warning("Commit of %s refused: %s", staged.outcome.value, result.reason)
                raise RemoteRejection("commit", result.reason)
            self.stager.clear()
            self.count.reset()
            self.last_error = None
            if result.event is not None:
                self.apply_pushed_event(result.event)
        self.refresh()
        return result.event

    def undo(self) -> GameEvent | None:
        with self._lock:
            self._check_idle()
            if not active_events(self.snapshot.events):
                raise ScoringValidationError("Nothing to undo", field="events")
            self.stager.pause()
            self.in_flight = True
        try:
            result = self.service.undo_last_play(self.game_id)
        except Exception:
            with self._lock:
                self.in_flight = False
            raise
        with self._lock:
            self.in_flight = False
            if not result.ok:
                logger.warning("Undo refused: %s", result.reason)
                raise RemoteRejection("undo", result.reason)
            self.stager.clear()
            self.count.reset()
        self.refresh()
        return result.event

    def _auto_commit(self, staged: StagedPlay, token: int) -> None:
        with self._lock:
            # an adjustment since expiry restarted the countdown
            if (self.stager.staged is not staged or self.in_flight
                    or not self.stager.timer.expired(token)):
                logger.debug("Ignoring stale auto-commit of %s", staged.outcome.value)
                return
            try:
                pending = self._prepare_commit()
            except ScoringError as exc:
                self.last_error = exc
                logger.warning("Auto-commit of %s failed: %s", staged.outcome.value, exc)
                return
        try:
            self._send_commit(*pending)
        except ScoringError as exc:
            with self._lock:
                self.last_error = exc
            logger.warning("Auto-commit of %s failed: %s", staged.outcome.value, exc)

    def _check_idle(self) -> None:
        if self.in_flight:
            raise ScoringValidationError("commit in flight")

    @staticmethod
    def _batter_id(state: SessionState) -> str | None:
        return state.batter.player_id if state.batter else None

    # -- substitutions ----------------------------------------------------

    def substitution(self, kind: SubstitutionKind | str, outgoing_id: str,
                     team_id: str | None = None) -> SubstitutionWorkflow:
        """Start a substitution for the batting side (pinch hit / run) or the
        fielding side (pitching change) unless ``team_id`` says otherwise."""
        with self._lock:
            kind = SubstitutionKind(kind)
            summary = self.snapshot.summary
            half = self.derived().half
            if team_id is None:
                team_id = (summary.fielding_team_id(half)
                           if kind is SubstitutionKind.PITCHER_CHANGE
                           else summary.batting_team_id(half))
            return SubstitutionWorkflow(
                self.service, self.game_id, team_id, kind, outgoing_id,
                self.snapshot.lineup_for_team(team_id),
                allow_reentry=summary.allow_reentry,
                inning=summary.inning,
            )

    # -- background refresh -----------------------------------------------

    def start_background_refresh(self, interval: float | None = None) -> None:
        if self._refresh_thread is not None:
            return
        interval = interval or config.get_refresh_seconds()
        stop = threading.Event()
        self._stop_refresh = stop
        self._refresh_thread = threading.Thread(
            target=self._refresh_loop, args=(stop, interval), daemon=True)
        self._refresh_thread.start()
        logger.info("Background refresh every %.1fs for %s", interval, self.game_id)

    def stop_background_refresh(self) -> None:
        if self._stop_refresh is not None:
            self._stop_refresh.set()
        if self._refresh_thread is not None:
            self._refresh_thread.join(timeout=5)
        self._stop_refresh = None
        self._refresh_thread = None

    def _refresh_loop(self, stop: threading.Event, interval: float) -> None:
        stats = self.refresh_stats
        while not stop.wait(interval):
            if self.in_flight:
                continue
            try:
                self.refresh()
            except Exception as exc:
                stats.consecutive_errors += 1
                stats.error_log.append({"error": str(exc),
                                        "consecutive_errors": stats.consecutive_errors})
                logger.warning("Refresh failed (%d in a row): %s",
                               stats.consecutive_errors, exc)
                if stats.consecutive_errors >= MAX_CONSECUTIVE_ERRORS:
                    logger.error("Stopping background refresh for %s", self.game_id)
                    return
                continue
            stats.consecutive_errors = 0
            stats.refreshes += 1
