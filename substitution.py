# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Substitution workflow: pinch hitters, pinch runners and pitching changes.

The workflow is a small state machine whose states are dataclasses::

    SelectStep --select--> CompleteStep
               \\-------> FillVacancyStep --fill/skip--> CompleteStep
               \\-------> PitcherDestStep --swap--> CompleteStep
                                          --bench--> FillVacancyStep
                                          --back--> SelectStep

Each step that talks to the log service does so exactly once.  A refused
call leaves the workflow on the same step so the operator can retry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from errors import RemoteRejection, SubstitutionError
from log_service import LogService, ServiceResult
from models import PITCHER_POSITION, GameLineupEntry

logger = logging.getLogger(__name__)


class SubstitutionKind(str, Enum):
    PINCH_HIT = "pinch_hit"
    PINCH_RUN = "pinch_run"
    PITCHER_CHANGE = "pitcher_change"


class PitcherDestination(str, Enum):
    SWAP = "swap"
    BENCH = "bench"


@dataclass(frozen=True)
class VacatedSlot:
    """Batting-order and fielding slot left empty by a pulled starter."""
    batting_order: int | None
    fielding_position: int | None


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SelectStep:
    pass


@dataclass(frozen=True)
class PitcherDestStep:
    incoming_id: str


@dataclass(frozen=True)
class FillVacancyStep:
    incoming_id: str
    vacancy: VacatedSlot


@dataclass(frozen=True)
class CompleteStep:
    pass


@dataclass(frozen=True)
class AbandonedStep:
    pass


Step = SelectStep | PitcherDestStep | FillVacancyStep | CompleteStep | AbandonedStep


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------

class SubstitutionWorkflow:
    def __init__(self, service: LogService, game_id: str, team_id: str,
                 kind: SubstitutionKind | str, outgoing_id: str,
                 lineup: list[GameLineupEntry], allow_reentry: bool = False,
                 inning: int = 1):
        self.service = service
        self.game_id = game_id
        self.team_id = team_id
        self.kind = SubstitutionKind(kind)
        self.outgoing_id = outgoing_id
        self.allow_reentry = allow_reentry
        self.inning = inning
        self.lineup: dict[str, GameLineupEntry] = {e.player_id: e.model_copy() for e in lineup}
        self.step: Step = SelectStep()
        self.mutated = False

        outgoing = self.lineup.get(outgoing_id)
        if outgoing is None or outgoing.is_exited:
            raise SubstitutionError(f"{outgoing_id} is not in the game",
                                    field="outgoing_id")
        if self.kind is SubstitutionKind.PITCHER_CHANGE \
                and outgoing.fielding_position != PITCHER_POSITION:
            raise SubstitutionError(f"{outgoing.display_name} is not pitching",
                                    field="outgoing_id")

    @property
    def outgoing(self) -> GameLineupEntry:
        return self.lineup[self.outgoing_id]

    @property
    def finished(self) -> bool:
        return isinstance(self.step, (CompleteStep, AbandonedStep))

    # -- pools ------------------------------------------------------------

    def bench(self) -> list[GameLineupEntry]:
        return [e for e in self.lineup.values() if e.is_bench]

    def lineup_starters(self) -> list[GameLineupEntry]:
        return [e for e in self.lineup.values()
                if e.is_starter and e.player_id != self.outgoing_id]

    def reentry(self) -> list[GameLineupEntry]:
        if not self.allow_reentry:
            return []
        return [e for e in self.lineup.values() if e.is_exited]

    def candidates(self) -> dict[str, list[GameLineupEntry]]:
        return {"bench": self.bench(), "lineup": self.lineup_starters(),
                "reentry": self.reentry()}

    def _candidate(self, player_id: str, pools: list[list[GameLineupEntry]]) -> GameLineupEntry:
        if not any(pools):
            raise SubstitutionError("No eligible substitutes", field="incoming_id")
        for pool in pools:
            for entry in pool:
                if entry.player_id == player_id:
                    return entry
        raise SubstitutionError(f"{player_id} is not an eligible substitute",
                                field="incoming_id")

    # -- transitions ------------------------------------------------------

    def select(self, incoming_id: str, fielding_position: int | None = None) -> Step:
        self._expect(SelectStep)
        incoming = self._candidate(
            incoming_id, [self.bench(), self.lineup_starters(), self.reentry()])

        if self.kind is SubstitutionKind.PITCHER_CHANGE:
            position = PITCHER_POSITION
        elif fielding_position is not None:
            position = fielding_position
        else:
            position = self.outgoing.fielding_position
        if position is not None and not 1 <= position <= 9:
            raise SubstitutionError(f"invalid fielding position {position}",
                                    field="fielding_position")

        if self.kind is SubstitutionKind.PITCHER_CHANGE and incoming.is_starter:
            self.step = PitcherDestStep(incoming_id)
            return self.step

        vacancy = self._vacancy_of(incoming)
        self._substitute(incoming_id, position)
        self.step = FillVacancyStep(incoming_id, vacancy) if vacancy else CompleteStep()
        return self.step

    def choose_pitcher_destination(self, destination: PitcherDestination | str) -> Step:
        step = self._expect(PitcherDestStep)
        destination = PitcherDestination(destination)
        incoming = self.lineup[step.incoming_id]

        if destination is PitcherDestination.SWAP:
            self._call("swap_fielding_positions", self.service.swap_fielding_positions,
                       self.game_id, self.team_id, self.outgoing_id, step.incoming_id)
            old = incoming.fielding_position
            self._update(step.incoming_id, fielding_position=PITCHER_POSITION)
            self._update(self.outgoing_id, fielding_position=old)
            self.step = CompleteStep()
            return self.step

        vacancy = self._vacancy_of(incoming)
        self._substitute(step.incoming_id, PITCHER_POSITION)
        self.step = FillVacancyStep(step.incoming_id, vacancy)
        return self.step

    def back(self) -> Step:
        self._expect(PitcherDestStep)
        self.step = SelectStep()
        return self.step

    def fill_candidates(self) -> list[GameLineupEntry]:
        return self.bench() + self.reentry()

    def fill_vacancy(self, player_id: str) -> Step:
        step = self._expect(FillVacancyStep)
        self._candidate(player_id, [self.bench(), self.reentry()])
        vacancy = step.vacancy
        self._call("fill_vacant_position", self.service.fill_vacant_position,
                   self.game_id, self.team_id, player_id, vacancy.batting_order,
                   vacancy.fielding_position, self.inning)
        self._update(player_id, batting_order=vacancy.batting_order,
                     fielding_position=vacancy.fielding_position,
                     entered_inning=self.inning, exited_inning=None)
        self.step = CompleteStep()
        return self.step

    def skip_vacancy(self) -> Step:
        step = self._expect(FillVacancyStep)
        logger.info("Left order %s / position %s vacant",
                    step.vacancy.batting_order, step.vacancy.fielding_position)
        self.step = CompleteStep()
        return self.step

    def abandon(self) -> Step:
        if self.mutated:
            raise SubstitutionError("Substitution already applied; finish or skip the vacancy")
        if self.finished:
            raise SubstitutionError("Substitution is already finished")
        self.step = AbandonedStep()
        return self.step

    # -- helpers ----------------------------------------------------------

    def _expect(self, step_type):
        if not isinstance(self.step, step_type):
            raise SubstitutionError(
                f"cannot do that during {type(self.step).__name__}")
        return self.step

    @staticmethod
    def _vacancy_of(incoming: GameLineupEntry) -> VacatedSlot | None:
        if not incoming.is_starter:
            return None
        return VacatedSlot(incoming.batting_order, incoming.fielding_position)

    def _substitute(self, incoming_id: str, position: int | None) -> None:
        self._call("substitute", self.service.substitute, self.game_id, self.team_id,
                   self.outgoing_id, incoming_id, position, self.inning)
        self._update(incoming_id, batting_order=self.outgoing.batting_order,
                     fielding_position=position, entered_inning=self.inning,
                     exited_inning=None)
        self._update(self.outgoing_id, exited_inning=self.inning)

    def _update(self, player_id: str, **update) -> None:
        self.lineup[player_id] = self.lineup[player_id].model_copy(update=update)

    def _call(self, operation: str, fn, *args) -> ServiceResult:
        result = fn(*args)
        if not result.ok:
            logger.warning("%s refused for %s: %s", operation, self.team_id, result.reason)
            raise RemoteRejection(operation, result.reason)
        self.mutated = True
        logger.info("%s %s applied (%s)", self.kind.value, operation, self.outgoing_id)
        return result
