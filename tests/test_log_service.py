# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0", "pytest>=7.0"]
# ///
"""Tests for the in-memory log service.

Validates:
  1. Commits get ids and sequence numbers and update the score
  2. Three outs advance the half-inning
  3. Stale or misplaced plays are refused with a reason
  4. Undo soft-deletes and recomputes the summary
  5. Lineup operations and push notifications
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from models import (
    BaseRunners,
    EventPayload,
    GameLineupEntry,
    GameStatus,
    GameSummary,
    Half,
    Outcome,
)
from log_service import InMemoryLogService


def make_service(allow_reentry=False, status=GameStatus.IN_PROGRESS):
    service = InMemoryLogService()
    summary = GameSummary(game_id="g1", home_team_id="home", away_team_id="away",
                          allow_reentry=allow_reentry, status=status)
    home = [GameLineupEntry(player_id=f"h{i}", team_id="home", batting_order=i,
                            fielding_position=i) for i in range(1, 10)]
    home.append(GameLineupEntry(player_id="hb", team_id="home"))
    away = [GameLineupEntry(player_id=f"a{i}", team_id="away", batting_order=i,
                            fielding_position=i) for i in range(1, 10)]
    service.create_game(summary, home, away)
    return service


def make_payload(outcome=Outcome.GROUNDOUT, outs_before=0, outs_after=1, runs=0,
                 inning=1, half=Half.TOP, runners_after=None, runners_before=None):
    return EventPayload(inning=inning, inning_half=half, batter_id="a1", outcome=outcome,
                        outs_before=outs_before, outs_after=outs_after, runs_scored=runs,
                        runners_before=runners_before or BaseRunners(),
                        runners_after=runners_after or BaseRunners())


class TestCommit:
    def test_assigns_sequence_and_id(self):
        service = make_service()
        first = service.commit_play("g1", make_payload())
        second = service.commit_play("g1", make_payload(outs_before=1, outs_after=2))
        assert first.ok and second.ok
        assert first.event.sequence_number == 1
        assert second.event.sequence_number == 2
        assert first.event.id != second.event.id

    def test_runs_go_to_batting_side(self):
        service = make_service()
        service.commit_play("g1", make_payload(Outcome.HOME_RUN, outs_after=0, runs=1))
        summary = service.fetch_snapshot("g1").summary
        assert summary.away_score == 1
        assert summary.home_score == 0

    def test_third_out_advances_half(self):
        service = make_service()
        service.commit_play("g1", make_payload(outs_before=0, outs_after=3))
        summary = service.fetch_snapshot("g1").summary
        assert (summary.inning, summary.inning_half) == (1, Half.BOTTOM)
        service.commit_play("g1", make_payload(half=Half.BOTTOM, outs_after=3))
        summary = service.fetch_snapshot("g1").summary
        assert (summary.inning, summary.inning_half) == (2, Half.TOP)

    def test_wrong_half_refused(self):
        service = make_service()
        result = service.commit_play("g1", make_payload(half=Half.BOTTOM))
        assert not result.ok
        assert "top 1" in result.reason

    def test_stale_outs_refused(self):
        service = make_service()
        service.commit_play("g1", make_payload())
        result = service.commit_play("g1", make_payload(outs_before=0, outs_after=1))
        assert not result.ok
        assert result.reason.startswith("stale state")

    def test_stale_runners_refused(self):
        service = make_service()
        service.commit_play("g1", make_payload(Outcome.SINGLE, outs_after=0,
                                               runners_after=BaseRunners(first="a1")))
        # same out count, but the play was built before the single reached the log
        result = service.commit_play("g1", make_payload(Outcome.SINGLE, outs_after=0,
                                                        runners_after=BaseRunners(first="a2")))
        assert not result.ok
        assert result.reason == "stale state: bases 100 recorded, play assumed 000"

    def test_pinch_runner_identity_not_compared(self):
        service = make_service()
        service.commit_play("g1", make_payload(Outcome.SINGLE, outs_after=0,
                                               runners_after=BaseRunners(first="a1")))
        result = service.commit_play("g1", make_payload(
            Outcome.STOLEN_BASE, outs_after=0, runners_before=BaseRunners(first="ab"),
            runners_after=BaseRunners(second="ab")))
        assert result.ok

    def test_revision_bumped_by_each_change(self):
        service = make_service()
        start = service.fetch_snapshot("g1").revision
        service.commit_play("g1", make_payload())
        assert service.fetch_snapshot("g1").revision == start + 1
        service.undo_last_play("g1")
        assert service.fetch_snapshot("g1").revision == start + 2

    def test_final_game_refused(self):
        service = make_service(status=GameStatus.FINAL)
        result = service.commit_play("g1", make_payload())
        assert not result.ok
        assert result.reason == "game is final"

    def test_unknown_game(self):
        service = make_service()
        assert not service.commit_play("nope", make_payload()).ok
        with pytest.raises(KeyError):
            service.fetch_snapshot("nope")


class TestUndo:
    def test_undo_restores_previous_state(self):
        service = make_service()
        service.commit_play("g1", make_payload(Outcome.HOME_RUN, outs_after=0, runs=1))
        service.commit_play("g1", make_payload(outs_before=0, outs_after=3))
        result = service.undo_last_play("g1")
        assert result.ok
        assert result.event.is_deleted
        snapshot = service.fetch_snapshot("g1")
        assert (snapshot.summary.inning, snapshot.summary.inning_half) == (1, Half.TOP)
        assert snapshot.summary.away_score == 1
        assert len(snapshot.events) == 2

        service.undo_last_play("g1")
        assert service.fetch_snapshot("g1").summary.away_score == 0

    def test_undo_with_nothing(self):
        result = make_service().undo_last_play("g1")
        assert not result.ok
        assert result.reason == "no plays to undo"

    def test_sequence_continues_after_undo(self):
        service = make_service()
        service.commit_play("g1", make_payload())
        service.undo_last_play("g1")
        result = service.commit_play("g1", make_payload())
        assert result.event.sequence_number == 2


class TestLineup:
    def test_substitute_takes_batting_slot(self):
        service = make_service()
        assert service.substitute("g1", "home", "h7", "hb", 7, 4).ok
        lineup = {e.player_id: e for e in service.fetch_snapshot("g1").home_lineup}
        assert lineup["h7"].exited_inning == 4
        assert lineup["hb"].batting_order == 7
        assert lineup["hb"].fielding_position == 7
        assert lineup["hb"].entered_inning == 4

    def test_reentry_refused_when_not_allowed(self):
        service = make_service()
        service.substitute("g1", "home", "h7", "hb", 7, 4)
        result = service.substitute("g1", "home", "hb", "h7", 7, 5)
        assert not result.ok
        assert "re-enter" in result.reason

    def test_reentry_allowed(self):
        service = make_service(allow_reentry=True)
        service.substitute("g1", "home", "h7", "hb", 7, 4)
        assert service.substitute("g1", "home", "hb", "h7", 7, 5).ok

    def test_swap_positions(self):
        service = make_service()
        assert service.swap_fielding_positions("g1", "home", "h1", "h6").ok
        lineup = {e.player_id: e for e in service.fetch_snapshot("g1").home_lineup}
        assert lineup["h1"].fielding_position == 6
        assert lineup["h6"].fielding_position == 1

    def test_fill_vacancy(self):
        service = make_service()
        assert service.fill_vacant_position("g1", "home", "hb", 3, 3, 6).ok
        lineup = {e.player_id: e for e in service.fetch_snapshot("g1").home_lineup}
        assert lineup["hb"].batting_order == 3
        assert lineup["hb"].entered_inning == 6


def test_subscribers_get_event_then_snapshot():
    service = make_service()
    listener = MagicMock()
    unsubscribe = service.subscribe("g1", listener)
    service.commit_play("g1", make_payload())
    kinds = [c.args[0] for c in listener.call_args_list]
    assert kinds == ["event", "snapshot"]

    unsubscribe()
    service.commit_play("g1", make_payload(outs_before=1, outs_after=2))
    assert listener.call_count == 2


def test_failing_listener_does_not_break_commit():
    service = make_service()
    service.subscribe("g1", MagicMock(side_effect=RuntimeError("boom")))
    assert service.commit_play("g1", make_payload()).ok
