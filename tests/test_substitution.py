# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0", "pytest>=7.0"]
# ///
"""Tests for the substitution workflow.

Validates:
  1. Bench pinch hitters complete without a vacancy
  2. Pulling a lineup starter always leaves a vacancy at their old slot
  3. Pitching changes: bench reliever, swap, and bench-the-pitcher paths
  4. Remote refusals keep the step; abandon only before the first mutation
  5. Re-entry pool honours the game setting
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from errors import RemoteRejection, SubstitutionError
from log_service import InMemoryLogService, ServiceResult
from models import GameLineupEntry, GameSummary
from substitution import (
    AbandonedStep,
    CompleteStep,
    FillVacancyStep,
    PitcherDestStep,
    SelectStep,
    SubstitutionKind,
    SubstitutionWorkflow,
    VacatedSlot,
)


def make_lineup(bench=("hb",), exited=()):
    lineup = [GameLineupEntry(player_id=f"h{i}", team_id="home", player_name=f"Home {i}",
                              batting_order=i, fielding_position=i) for i in range(1, 10)]
    lineup += [GameLineupEntry(player_id=p, team_id="home") for p in bench]
    lineup += [GameLineupEntry(player_id=p, team_id="home", batting_order=None,
                               fielding_position=None, exited_inning=2) for p in exited]
    return lineup


def ok_service():
    service = MagicMock()
    service.substitute.return_value = ServiceResult.success()
    service.swap_fielding_positions.return_value = ServiceResult.success()
    service.fill_vacant_position.return_value = ServiceResult.success()
    return service


def make_workflow(kind, outgoing, service=None, allow_reentry=False, lineup=None):
    return SubstitutionWorkflow(service or ok_service(), "g1", "home", kind, outgoing,
                                lineup or make_lineup(), allow_reentry=allow_reentry,
                                inning=5)


class TestPinchHit:
    def test_bench_player_completes(self):
        service = ok_service()
        wf = make_workflow(SubstitutionKind.PINCH_HIT, "h4", service)
        step = wf.select("hb")
        assert isinstance(step, CompleteStep)
        service.substitute.assert_called_once_with("g1", "home", "h4", "hb", 4, 5)
        assert wf.lineup["hb"].batting_order == 4
        assert wf.lineup["h4"].is_exited

    def test_lineup_starter_leaves_vacancy(self):
        wf = make_workflow(SubstitutionKind.PINCH_HIT, "h4")
        step = wf.select("h8")
        assert isinstance(step, FillVacancyStep)
        assert step.vacancy == VacatedSlot(batting_order=8, fielding_position=8)

    def test_fill_vacancy_with_bench(self):
        service = ok_service()
        wf = make_workflow(SubstitutionKind.PINCH_HIT, "h4", service)
        wf.select("h8")
        step = wf.fill_vacancy("hb")
        assert isinstance(step, CompleteStep)
        service.fill_vacant_position.assert_called_once_with("g1", "home", "hb", 8, 8, 5)

    def test_skip_vacancy(self):
        service = ok_service()
        wf = make_workflow(SubstitutionKind.PINCH_HIT, "h4", service)
        wf.select("h8")
        assert isinstance(wf.skip_vacancy(), CompleteStep)
        service.fill_vacant_position.assert_not_called()

    def test_unknown_incoming(self):
        service = ok_service()
        wf = make_workflow(SubstitutionKind.PINCH_HIT, "h4", service)
        with pytest.raises(SubstitutionError):
            wf.select("ghost")
        service.substitute.assert_not_called()

    def test_outgoing_cannot_replace_themselves(self):
        wf = make_workflow(SubstitutionKind.PINCH_HIT, "h4")
        with pytest.raises(SubstitutionError):
            wf.select("h4")

    def test_invalid_position(self):
        wf = make_workflow(SubstitutionKind.PINCH_RUN, "h4")
        with pytest.raises(SubstitutionError):
            wf.select("hb", fielding_position=12)

    def test_no_candidates(self):
        lineup = [GameLineupEntry(player_id="h1", team_id="home", batting_order=1,
                                  fielding_position=1)]
        wf = make_workflow(SubstitutionKind.PINCH_HIT, "h1", lineup=lineup)
        with pytest.raises(SubstitutionError, match="No eligible"):
            wf.select("anyone")


class TestPitcherChange:
    def test_bench_reliever(self):
        service = ok_service()
        wf = make_workflow(SubstitutionKind.PITCHER_CHANGE, "h1", service)
        assert isinstance(wf.select("hb", fielding_position=7), CompleteStep)
        service.substitute.assert_called_once_with("g1", "home", "h1", "hb", 1, 5)

    def test_fielder_goes_to_destination_step(self):
        service = ok_service()
        wf = make_workflow(SubstitutionKind.PITCHER_CHANGE, "h1", service)
        step = wf.select("h6")
        assert step == PitcherDestStep("h6")
        service.substitute.assert_not_called()

    def test_swap(self):
        service = ok_service()
        wf = make_workflow(SubstitutionKind.PITCHER_CHANGE, "h1", service)
        wf.select("h6")
        assert isinstance(wf.choose_pitcher_destination("swap"), CompleteStep)
        service.swap_fielding_positions.assert_called_once_with("g1", "home", "h1", "h6")
        assert wf.lineup["h6"].fielding_position == 1
        assert wf.lineup["h1"].fielding_position == 6

    def test_bench_pitcher_leaves_vacancy(self):
        wf = make_workflow(SubstitutionKind.PITCHER_CHANGE, "h1")
        wf.select("h6")
        step = wf.choose_pitcher_destination("bench")
        assert step == FillVacancyStep("h6", VacatedSlot(6, 6))

    def test_back_returns_to_select(self):
        service = ok_service()
        wf = make_workflow(SubstitutionKind.PITCHER_CHANGE, "h1", service)
        wf.select("h6")
        assert isinstance(wf.back(), SelectStep)
        assert not wf.mutated

    def test_outgoing_must_be_pitching(self):
        with pytest.raises(SubstitutionError):
            make_workflow(SubstitutionKind.PITCHER_CHANGE, "h4")


class TestFailuresAndAbandon:
    def test_remote_refusal_keeps_step(self):
        service = ok_service()
        service.substitute.return_value = ServiceResult.failure("lineup locked")
        wf = make_workflow(SubstitutionKind.PINCH_HIT, "h4", service)
        with pytest.raises(RemoteRejection) as exc:
            wf.select("hb")
        assert exc.value.reason == "lineup locked"
        assert isinstance(wf.step, SelectStep)

        service.substitute.return_value = ServiceResult.success()
        assert isinstance(wf.select("hb"), CompleteStep)

    def test_abandon_before_mutation(self):
        wf = make_workflow(SubstitutionKind.PINCH_HIT, "h4")
        assert isinstance(wf.abandon(), AbandonedStep)
        with pytest.raises(SubstitutionError):
            wf.select("hb")

    def test_abandon_after_mutation_refused(self):
        wf = make_workflow(SubstitutionKind.PINCH_HIT, "h4")
        wf.select("h8")
        with pytest.raises(SubstitutionError):
            wf.abandon()


class TestReentry:
    def test_exited_players_hidden_without_reentry(self):
        wf = make_workflow(SubstitutionKind.PINCH_HIT, "h4",
                           lineup=make_lineup(exited=("old",)))
        assert wf.reentry() == []
        with pytest.raises(SubstitutionError):
            wf.select("old")

    def test_exited_players_offered_with_reentry(self):
        wf = make_workflow(SubstitutionKind.PINCH_HIT, "h4", allow_reentry=True,
                           lineup=make_lineup(exited=("old",)))
        assert [e.player_id for e in wf.reentry()] == ["old"]
        assert isinstance(wf.select("old"), CompleteStep)

    def test_player_exited_in_this_workflow_can_fill_vacancy(self):
        service = ok_service()
        wf = make_workflow(SubstitutionKind.PINCH_HIT, "h4", service, allow_reentry=True,
                           lineup=make_lineup(bench=()))
        wf.select("h8")
        assert "h4" in [e.player_id for e in wf.fill_candidates()]
        assert isinstance(wf.fill_vacancy("h4"), CompleteStep)


def test_against_in_memory_service():
    service = InMemoryLogService()
    summary = GameSummary(game_id="g1", home_team_id="home", away_team_id="away")
    service.create_game(summary, make_lineup(), [])
    wf = SubstitutionWorkflow(service, "g1", "home", SubstitutionKind.PINCH_HIT, "h4",
                              service.fetch_snapshot("g1").home_lineup, inning=3)
    wf.select("h8")
    wf.fill_vacancy("hb")
    lineup = {e.player_id: e for e in service.fetch_snapshot("g1").home_lineup}
    assert lineup["h4"].is_exited
    assert (lineup["h8"].batting_order, lineup["h8"].fielding_position) == (4, 4)
    assert (lineup["hb"].batting_order, lineup["hb"].fielding_position) == (8, 8)
