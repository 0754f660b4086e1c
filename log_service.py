# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Authoritative game log service.

``LogService`` is the contract the scoring session talks to: mutations
(commit, undo, lineup changes) return a ``ServiceResult`` and reads return
a full ``GameSnapshot``.  ``InMemoryLogService`` is the process-local
implementation used by the web app and the tests.  It keeps one record per
game behind a lock and pushes every change to subscribers.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Callable, Protocol

from event_log import active_events, derive_current_state
from models import (
    EventPayload,
    GameEvent,
    GameLineupEntry,
    GameSnapshot,
    GameStatus,
    GameSummary,
    Half,
)

logger = logging.getLogger(__name__)

Listener = Callable[[str, object], None]


@dataclass(frozen=True)
class ServiceResult:
    ok: bool
    reason: str = ""
    event: GameEvent | None = None

    @classmethod
    def success(cls, event: GameEvent | None = None) -> ServiceResult:
        return cls(ok=True, event=event)

    @classmethod
    def failure(cls, reason: str) -> ServiceResult:
        return cls(ok=False, reason=reason)


class LogService(Protocol):
    def commit_play(self, game_id: str, payload: EventPayload) -> ServiceResult: ...

    def undo_last_play(self, game_id: str) -> ServiceResult: ...

    def substitute(self, game_id: str, team_id: str, outgoing_id: str,
                   incoming_id: str, fielding_position: int | None,
                   inning: int) -> ServiceResult: ...

    def swap_fielding_positions(self, game_id: str, team_id: str,
                                player_a: str, player_b: str) -> ServiceResult: ...

    def fill_vacant_position(self, game_id: str, team_id: str, player_id: str,
                             batting_order: int | None,
                             fielding_position: int | None,
                             inning: int) -> ServiceResult: ...

    def fetch_snapshot(self, game_id: str) -> GameSnapshot: ...


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------

@dataclass
class GameRecord:
    summary: GameSummary
    events: list[GameEvent] = field(default_factory=list)
    lineups: dict[str, list[GameLineupEntry]] = field(default_factory=dict)
    listeners: list[Listener] = field(default_factory=list)
    next_sequence: int = 1
    revision: int = 0

    def snapshot(self) -> GameSnapshot:
        return GameSnapshot(
            revision=self.revision,
            summary=self.summary.model_copy(),
            events=list(self.events),
            home_lineup=[e.model_copy() for e in self.lineups[self.summary.home_team_id]],
            away_lineup=[e.model_copy() for e in self.lineups[self.summary.away_team_id]],
        )

    def entry(self, team_id: str, player_id: str) -> tuple[int, GameLineupEntry] | None:
        for i, e in enumerate(self.lineups.get(team_id, [])):
            if e.player_id == player_id:
                return i, e
        return None

    def replace(self, team_id: str, index: int, **update) -> None:
        lineup = self.lineups[team_id]
        lineup[index] = lineup[index].model_copy(update=update)
        self.revision += 1


def _next_half(inning: int, half: Half) -> tuple[int, Half]:
    if half is Half.TOP:
        return inning, Half.BOTTOM
    return inning + 1, Half.TOP


class InMemoryLogService:
    """Thread-safe in-memory game log."""

    def __init__(self):
        self._games: dict[str, GameRecord] = {}
        self._lock = threading.Lock()

    # -- setup / reads ----------------------------------------------------

    def create_game(self, summary: GameSummary,
                    home_lineup: list[GameLineupEntry] | None = None,
                    away_lineup: list[GameLineupEntry] | None = None) -> GameSnapshot:
        with self._lock:
            record = GameRecord(
                summary=summary.model_copy(),
                lineups={
                    summary.home_team_id: [e.model_copy() for e in home_lineup or []],
                    summary.away_team_id: [e.model_copy() for e in away_lineup or []],
                },
            )
            self._games[summary.game_id] = record
            logger.info("Created game %s (%s at %s)", summary.game_id,
                        summary.away_team_name, summary.home_team_name)
            return record.snapshot()

    def game_ids(self) -> list[str]:
        with self._lock:
            return list(self._games)

    def has_game(self, game_id: str) -> bool:
        with self._lock:
            return game_id in self._games

    def fetch_snapshot(self, game_id: str) -> GameSnapshot:
        with self._lock:
            return self._record(game_id).snapshot()

    def subscribe(self, game_id: str, listener: Listener) -> Callable[[], None]:
        """Register a push listener.  Returns a function that unsubscribes."""
        with self._lock:
            listeners = self._record(game_id).listeners
            listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in listeners:
                    listeners.remove(listener)

        return unsubscribe

    def _record(self, game_id: str) -> GameRecord:
        try:
            return self._games[game_id]
        except KeyError:
            raise KeyError(f"unknown game: {game_id}") from None

    # -- plays ------------------------------------------------------------

    def commit_play(self, game_id: str, payload: EventPayload) -> ServiceResult:
        with self._lock:
            record = self._games.get(game_id)
            if record is None:
                return ServiceResult.failure(f"unknown game: {game_id}")
            summary = record.summary
            if summary.status is not GameStatus.IN_PROGRESS:
                return ServiceResult.failure(f"game is {summary.status.value}")
            if (payload.inning, payload.inning_half) != (summary.inning, summary.inning_half):
                return ServiceResult.failure(
                    f"play is for {payload.inning_half.value} {payload.inning} but the game "
                    f"is in {summary.inning_half.value} {summary.inning}")
            current = derive_current_state(record.events, summary.inning, summary.inning_half)
            if payload.outs_before != current.outs:
                return ServiceResult.failure(
                    f"stale state: {current.outs} outs recorded, play assumed "
                    f"{payload.outs_before}")
            if payload.runners_before.bases_string() != current.runners.bases_string():
                return ServiceResult.failure(
                    f"stale state: bases {current.runners.bases_string()} recorded, play "
                    f"assumed {payload.runners_before.bases_string()}")

            event = GameEvent(
                **payload.model_dump(),
                id=str(uuid.uuid4()),
                game_id=game_id,
                sequence_number=record.next_sequence,
            )
            record.next_sequence += 1
            record.revision += 1
            record.events.append(event)
            self._apply_to_summary(record, event)
            listeners = list(record.listeners)
            snapshot = record.snapshot()

        logger.info("Committed #%d %s in %s %d (%d outs, %d runs)",
                    event.sequence_number, event.outcome.value,
                    event.inning_half.value, event.inning, event.outs_after,
                    event.runs_scored)
        self._notify(listeners, "event", event)
        self._notify(listeners, "snapshot", snapshot)
        return ServiceResult.success(event)

    def undo_last_play(self, game_id: str) -> ServiceResult:
        with self._lock:
            record = self._games.get(game_id)
            if record is None:
                return ServiceResult.failure(f"unknown game: {game_id}")
            active = active_events(record.events)
            if not active:
                return ServiceResult.failure("no plays to undo")
            last = active[-1]
            deleted = last.model_copy(update={"is_deleted": True})
            record.events = [deleted if e.id == last.id else e for e in record.events]
            record.revision += 1
            self._recompute_summary(record)
            listeners = list(record.listeners)
            snapshot = record.snapshot()

        logger.info("Undid #%d %s", deleted.sequence_number, deleted.outcome.value)
        self._notify(listeners, "snapshot", snapshot)
        return ServiceResult.success(deleted)

    @staticmethod
    def _apply_to_summary(record: GameRecord, event: GameEvent) -> None:
        summary = record.summary
        update: dict = {}
        if event.runs_scored:
            key = "away_score" if event.inning_half is Half.TOP else "home_score"
            update[key] = getattr(summary, key) + event.runs_scored
        if event.outs_after >= 3:
            inning, half = _next_half(event.inning, event.inning_half)
            update.update(inning=inning, inning_half=half)
        if update:
            record.summary = summary.model_copy(update=update)

    @staticmethod
    def _recompute_summary(record: GameRecord) -> None:
        active = active_events(record.events)
        away = sum(e.runs_scored for e in active if e.inning_half is Half.TOP)
        home = sum(e.runs_scored for e in active if e.inning_half is Half.BOTTOM)
        if active:
            last = active[-1]
            inning, half = last.half_key
            if last.outs_after >= 3:
                inning, half = _next_half(inning, half)
        else:
            inning, half = 1, Half.TOP
        record.summary = record.summary.model_copy(update={
            "away_score": away, "home_score": home,
            "inning": inning, "inning_half": half,
        })

    # -- lineup changes ---------------------------------------------------

    def substitute(self, game_id: str, team_id: str, outgoing_id: str,
                   incoming_id: str, fielding_position: int | None,
                   inning: int) -> ServiceResult:
        """Outgoing exits; incoming takes the outgoing batting slot."""
        with self._lock:
            record = self._games.get(game_id)
            if record is None:
                return ServiceResult.failure(f"unknown game: {game_id}")
            out = record.entry(team_id, outgoing_id)
            inc = record.entry(team_id, incoming_id)
            if out is None:
                return ServiceResult.failure(f"{outgoing_id} is not on team {team_id}")
            if inc is None:
                return ServiceResult.failure(f"{incoming_id} is not on team {team_id}")
            out_index, outgoing = out
            inc_index, incoming = inc
            if outgoing.is_exited:
                return ServiceResult.failure(f"{outgoing.display_name} already left the game")
            if incoming.is_exited and not record.summary.allow_reentry:
                return ServiceResult.failure(
                    f"{incoming.display_name} cannot re-enter this game")

            record.replace(team_id, inc_index,
                           batting_order=outgoing.batting_order,
                           fielding_position=fielding_position,
                           entered_inning=inning, exited_inning=None)
            record.replace(team_id, out_index, exited_inning=inning)
            listeners = list(record.listeners)
            snapshot = record.snapshot()

        logger.info("Substitution on %s: %s for %s (position %s)",
                    team_id, incoming_id, outgoing_id, fielding_position)
        self._notify(listeners, "snapshot", snapshot)
        return ServiceResult.success()

    def swap_fielding_positions(self, game_id: str, team_id: str,
                                player_a: str, player_b: str) -> ServiceResult:
        with self._lock:
            record = self._games.get(game_id)
            if record is None:
                return ServiceResult.failure(f"unknown game: {game_id}")
            a = record.entry(team_id, player_a)
            b = record.entry(team_id, player_b)
            if a is None or b is None:
                return ServiceResult.failure("both players must be on the team")
            (a_index, a_entry), (b_index, b_entry) = a, b
            if a_entry.is_exited or b_entry.is_exited:
                return ServiceResult.failure("both players must be in the game")
            record.replace(team_id, a_index, fielding_position=b_entry.fielding_position)
            record.replace(team_id, b_index, fielding_position=a_entry.fielding_position)
            listeners = list(record.listeners)
            snapshot = record.snapshot()

        logger.info("Swapped positions on %s: %s <-> %s", team_id, player_a, player_b)
        self._notify(listeners, "snapshot", snapshot)
        return ServiceResult.success()

    def fill_vacant_position(self, game_id: str, team_id: str, player_id: str,
                             batting_order: int | None,
                             fielding_position: int | None,
                             inning: int) -> ServiceResult:
        with self._lock:
            record = self._games.get(game_id)
            if record is None:
                return ServiceResult.failure(f"unknown game: {game_id}")
            found = record.entry(team_id, player_id)
            if found is None:
                return ServiceResult.failure(f"{player_id} is not on team {team_id}")
            index, entry = found
            if entry.is_exited and not record.summary.allow_reentry:
                return ServiceResult.failure(f"{entry.display_name} cannot re-enter this game")
            update = {"batting_order": batting_order,
                      "fielding_position": fielding_position,
                      "exited_inning": None}
            if entry.is_bench or entry.is_exited:
                update["entered_inning"] = inning
            record.replace(team_id, index, **update)
            listeners = list(record.listeners)
            snapshot = record.snapshot()

        logger.info("Filled vacancy on %s with %s (order %s, position %s)",
                    team_id, player_id, batting_order, fielding_position)
        self._notify(listeners, "snapshot", snapshot)
        return ServiceResult.success()

    # -- push -------------------------------------------------------------

    @staticmethod
    def _notify(listeners: list[Listener], kind: str, item: object) -> None:
        for listener in listeners:
            try:
                listener(kind, item)
            except Exception:
                logger.exception("Listener failed on %s push", kind)
