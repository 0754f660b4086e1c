# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0", "pytest>=7.0"]
# ///
"""Tests for the base-state calculator.

Validates:
  1. Out outcomes add one out and clamp at three
  2. Forced advancement on walks
  3. Hits advance runners by the right number of bases
  4. Double plays clear exactly one runner (lead by default)
  5. Every outcome has a rule and results are deterministic
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from base_state import (
    RULE_GROUPS,
    RuleGroup,
    advance_runners,
    compute_outcome,
    force_walk,
)
from models import Base, BaseRunners, Outcome

LOADED = BaseRunners(first="r1", second="r2", third="r3")


class TestOuts:
    @pytest.mark.parametrize("outcome", [
        Outcome.GROUNDOUT, Outcome.FLYOUT, Outcome.LINEOUT, Outcome.POP_OUT,
        Outcome.STRIKEOUT_SWINGING, Outcome.STRIKEOUT_LOOKING,
    ])
    def test_single_out_adds_one(self, outcome):
        for outs in range(3):
            result = compute_outcome(outs, LOADED, outcome)
            assert result.outs == outs + 1
            assert result.runners == LOADED
            assert result.runs == 0

    def test_out_clamps_at_three(self):
        assert compute_outcome(3, BaseRunners(), Outcome.GROUNDOUT).outs == 3

    def test_triple_play_clamps(self):
        result = compute_outcome(1, LOADED, Outcome.TRIPLE_PLAY)
        assert result.outs == 3
        assert result.runners == LOADED


class TestWalks:
    def test_bases_empty(self):
        result = compute_outcome(0, BaseRunners(), Outcome.WALK, batter_id="b")
        assert result.runners == BaseRunners(first="b")
        assert result.runs == 0

    def test_bases_loaded_forces_run(self):
        result = compute_outcome(0, LOADED, Outcome.WALK, batter_id="b")
        assert result.runners == BaseRunners(first="b", second="r1", third="r2")
        assert result.runs == 1

    def test_runner_on_second_not_forced(self):
        runners = BaseRunners(second="r2")
        result = compute_outcome(0, runners, Outcome.HIT_BY_PITCH, batter_id="b")
        assert result.runners == BaseRunners(first="b", second="r2")
        assert result.runs == 0

    def test_first_and_third_only_first_moves(self):
        runners, runs = force_walk(BaseRunners(first="r1", third="r3"), "b")
        assert runners == BaseRunners(first="b", second="r1", third="r3")
        assert runs == 0

    def test_placeholder_batter(self):
        runners, _ = force_walk(BaseRunners(), None)
        assert runners.first == "batter"


class TestHits:
    def test_home_run_with_runner_on_second(self):
        result = compute_outcome(1, BaseRunners(second="r2"), Outcome.HOME_RUN, batter_id="b")
        assert result.runs == 2
        assert result.runners.is_empty()
        assert result.outs == 1

    def test_triple_clears_bases(self):
        result = compute_outcome(0, LOADED, Outcome.TRIPLE, batter_id="b")
        assert result.runs == 3
        assert result.runners == BaseRunners(third="b")

    def test_double_scores_second_and_third(self):
        result = compute_outcome(0, LOADED, Outcome.DOUBLE, batter_id="b")
        assert result.runs == 2
        assert result.runners == BaseRunners(second="b", third="r1")

    def test_single_to_outfield_moves_runner_two(self):
        result = compute_outcome(0, BaseRunners(first="r1"), Outcome.SINGLE,
                                 batter_id="b", hit_zone=8)
        assert result.runners == BaseRunners(first="b", third="r1")

    def test_single_to_infield_moves_runner_one(self):
        result = compute_outcome(0, BaseRunners(first="r1"), Outcome.SINGLE,
                                 batter_id="b", hit_zone=4)
        assert result.runners == BaseRunners(first="b", second="r1")

    def test_error_advances_everyone_one(self):
        result = compute_outcome(0, LOADED, Outcome.ERROR, batter_id="b")
        assert result.runs == 1
        assert result.runners == BaseRunners(first="b", second="r1", third="r2")


class TestDoublePlay:
    def test_default_victim_is_lead_runner(self):
        runners = BaseRunners(first="r1", second="r2")
        result = compute_outcome(0, runners, Outcome.DOUBLE_PLAY)
        assert result.outs == 2
        assert result.runners == BaseRunners(first="r1")

    def test_chosen_victim(self):
        runners = BaseRunners(first="r1", second="r2")
        result = compute_outcome(0, runners, Outcome.DOUBLE_PLAY, dp_victim=Base.FIRST)
        assert result.runners == BaseRunners(second="r2")

    def test_unoccupied_victim_falls_back_to_lead(self):
        runners = BaseRunners(first="r1")
        result = compute_outcome(0, runners, Outcome.DOUBLE_PLAY, dp_victim=Base.THIRD)
        assert result.runners.is_empty()

    def test_outs_clamp(self):
        assert compute_outcome(2, BaseRunners(first="r1"), Outcome.DOUBLE_PLAY).outs == 3


class TestOtherOutcomes:
    def test_sacrifice_fly_scores_only_from_third(self):
        result = compute_outcome(0, LOADED, Outcome.SACRIFICE_FLY, batter_id="b")
        assert result.outs == 1
        assert result.runs == 1
        assert result.runners == BaseRunners(first="r1", second="r2")

    def test_sacrifice_fly_no_runner_on_third(self):
        result = compute_outcome(0, BaseRunners(first="r1"), Outcome.SACRIFICE_FLY)
        assert result.runs == 0
        assert result.runners == BaseRunners(first="r1")

    def test_sacrifice_bunt(self):
        result = compute_outcome(0, BaseRunners(first="r1"), Outcome.SACRIFICE_BUNT)
        assert result.outs == 1
        assert result.runners == BaseRunners(second="r1")

    def test_wild_pitch_advances_without_batter(self):
        result = compute_outcome(1, BaseRunners(third="r3"), Outcome.WILD_PITCH, batter_id="b")
        assert result.runs == 1
        assert result.runners.is_empty()
        assert result.outs == 1

    def test_caught_stealing_removes_lead_runner(self):
        result = compute_outcome(0, BaseRunners(first="r1", second="r2"),
                                 Outcome.CAUGHT_STEALING)
        assert result.outs == 1
        assert result.runners == BaseRunners(first="r1")


def test_every_outcome_has_a_rule():
    assert set(RULE_GROUPS) == set(Outcome)
    assert set(RULE_GROUPS.values()) == set(RuleGroup)


def test_deterministic():
    a = compute_outcome(1, LOADED, Outcome.SINGLE, batter_id="b", hit_zone=7)
    b = compute_outcome(1, LOADED, Outcome.SINGLE, batter_id="b", hit_zone=7)
    assert a == b


def test_advance_runners_batter_scores():
    runners, runs = advance_runners(BaseRunners(first="r1"), 4, "b", 4)
    assert runs == 2
    assert runners.is_empty()
