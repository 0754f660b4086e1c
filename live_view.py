# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Live view projection: line score, box score, scoring summary and feeds.

Every function here is a pure projection of a ``GameSnapshot``; deleted
events are ignored throughout.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from event_log import DerivedState, active_events, derive_current_state
from models import (
    HIT_OUTCOMES,
    BaseRunners,
    GameEvent,
    GameLineupEntry,
    GameSnapshot,
    GameSummary,
    Half,
    Outcome,
)

NON_AT_BAT_OUTCOMES = frozenset({
    Outcome.WALK, Outcome.INTENTIONAL_WALK, Outcome.HIT_BY_PITCH,
    Outcome.SACRIFICE_FLY, Outcome.SACRIFICE_BUNT,
    Outcome.STOLEN_BASE, Outcome.CAUGHT_STEALING, Outcome.WILD_PITCH,
    Outcome.PASSED_BALL, Outcome.BALK, Outcome.PICKED_OFF,
})
STRIKEOUTS = frozenset({Outcome.STRIKEOUT_SWINGING, Outcome.STRIKEOUT_LOOKING})
WALKS = frozenset({Outcome.WALK, Outcome.INTENTIONAL_WALK})
SACRIFICES = frozenset({Outcome.SACRIFICE_FLY, Outcome.SACRIFICE_BUNT})
KEY_PLAY_OUTCOMES = frozenset({
    Outcome.HOME_RUN, Outcome.TRIPLE, Outcome.ERROR,
    Outcome.DOUBLE_PLAY, Outcome.TRIPLE_PLAY,
})

UNKNOWN = "Unknown"


def is_at_bat(outcome: Outcome) -> bool:
    return outcome not in NON_AT_BAT_OUTCOMES


def is_hit(outcome: Outcome) -> bool:
    return outcome in HIT_OUTCOMES


def ordinal(n: int) -> str:
    """Return ordinal string for an integer (1st, 2nd, 3rd, etc.)."""
    if 11 <= n % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def format_avg(hits: int, at_bats: int) -> str:
    if at_bats <= 0:
        return ".000"
    return f"{hits / at_bats:.3f}".removeprefix("0")


def format_ip(outs: int) -> str:
    """Innings pitched from outs: 7 -> "2.1"."""
    return f"{outs // 3}.{outs % 3}"


def half_label(half: Half) -> str:
    return "Top" if half is Half.TOP else "Bot"


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class LineScore(BaseModel):
    away_runs: list[int] = Field(default_factory=list)
    home_runs: list[int] = Field(default_factory=list)
    away_r: int = 0
    away_h: int = 0
    away_e: int = 0
    home_r: int = 0
    home_h: int = 0
    home_e: int = 0


class BattingLine(BaseModel):
    player_id: str
    player_name: str = UNKNOWN
    jersey_number: int | None = None
    ab: int = 0
    r: int = 0
    h: int = 0
    doubles: int = 0
    triples: int = 0
    hr: int = 0
    rbi: int = 0
    bb: int = 0
    k: int = 0
    hbp: int = 0
    sac: int = 0
    avg: str = ".000"

    @property
    def participated(self) -> bool:
        return bool(self.ab or self.bb or self.hbp or self.sac or self.r)


class PitchingLine(BaseModel):
    player_id: str
    player_name: str = UNKNOWN
    jersey_number: int | None = None
    ip: str = "0.0"
    ip_outs: int = 0
    h: int = 0
    r: int = 0
    bb: int = 0
    k: int = 0
    hr: int = 0
    hbp: int = 0

    @property
    def pitched(self) -> bool:
        return bool(self.ip_outs or self.h or self.bb or self.r or self.k or self.hbp)


class TeamBatting(BaseModel):
    team_id: str
    team_name: str
    players: list[BattingLine]
    totals: BattingLine


class TeamPitching(BaseModel):
    team_id: str
    team_name: str
    pitchers: list[PitchingLine]
    totals: PitchingLine


class ScoringSummaryEntry(BaseModel):
    inning: int
    inning_half: Half
    team_name: str
    runs: int
    batters: list[str]
    description: str


class KeyPlay(BaseModel):
    event_id: str
    outcome: Outcome
    description: str


class PlayLine(BaseModel):
    event_id: str
    sequence_number: int
    inning: int
    inning_half: Half
    label: str
    batter_name: str
    runs_scored: int
    outs_after: int


class HalfInningLog(BaseModel):
    header: str
    plays: list[PlayLine]


class LiveView(BaseModel):
    summary: GameSummary
    outs: int
    runners: BaseRunners
    line_score: LineScore
    away_batting: TeamBatting
    home_batting: TeamBatting
    away_pitching: TeamPitching
    home_pitching: TeamPitching
    scoring_summary: list[ScoringSummaryEntry]
    key_plays: list[KeyPlay]
    recent_plays: list[PlayLine]
    play_log: list[HalfInningLog]


# ---------------------------------------------------------------------------
# Line score
# ---------------------------------------------------------------------------

def line_score(snapshot: GameSnapshot) -> LineScore:
    """Runs by inning plus R/H/E.  Errors are charged to the fielding side."""
    active = active_events(snapshot.events)
    innings = max([snapshot.summary.inning, *(e.inning for e in active)])
    away_runs = [0] * innings
    home_runs = [0] * innings
    score = LineScore(away_runs=away_runs, home_runs=home_runs)
    for e in active:
        if e.inning_half is Half.TOP:
            away_runs[e.inning - 1] += e.runs_scored
            score.away_r += e.runs_scored
            score.away_h += is_hit(e.outcome)
            score.home_e += e.outcome is Outcome.ERROR
        else:
            home_runs[e.inning - 1] += e.runs_scored
            score.home_r += e.runs_scored
            score.home_h += is_hit(e.outcome)
            score.away_e += e.outcome is Outcome.ERROR
    return score


# ---------------------------------------------------------------------------
# Batting
# ---------------------------------------------------------------------------

def runs_by_player(events: list[GameEvent]) -> dict[str, int]:
    """Credit runs to the runners who left the bases on a scoring play.

    Lead runners are credited first.  Leftover runs (scorers that cannot be
    identified) go to the batter.
    """
    runs: dict[str, int] = {}
    for e in active_events(events):
        if e.runs_scored <= 0:
            continue
        after = {p for p in (e.runners_after.first, e.runners_after.second,
                             e.runners_after.third) if p}
        scorers = [e.runners_before.get(b) for b in reversed(e.runners_before.occupied())
                   if e.runners_before.get(b) not in after]
        if e.outcome is Outcome.HOME_RUN and e.batter_id and e.batter_id not in scorers:
            scorers.append(e.batter_id)
        credited = scorers[:e.runs_scored]
        for player in credited:
            runs[player] = runs.get(player, 0) + 1
        if len(credited) < e.runs_scored and e.batter_id:
            runs[e.batter_id] = runs.get(e.batter_id, 0) + e.runs_scored - len(credited)
    return runs


def _new_batting_line(entry: GameLineupEntry) -> BattingLine:
    return BattingLine(player_id=entry.player_id, player_name=entry.player_name or UNKNOWN,
                       jersey_number=entry.jersey_number)


def batting_lines(snapshot: GameSnapshot, half: Half) -> TeamBatting:
    """Box score for the side batting in ``half``."""
    lineup = snapshot.batting_lineup(half)
    summary = snapshot.summary
    team_id = summary.batting_team_id(half)
    team_name = summary.away_team_name if half is Half.TOP else summary.home_team_name

    lines: dict[str, BattingLine] = {}
    for entry in lineup:
        lines.setdefault(entry.player_id, _new_batting_line(entry))

    for e in active_events(snapshot.events):
        if e.inning_half is not half or not e.batter_id:
            continue
        line = lines.setdefault(e.batter_id, BattingLine(player_id=e.batter_id))
        o = e.outcome
        line.ab += is_at_bat(o)
        line.h += is_hit(o)
        line.doubles += o is Outcome.DOUBLE
        line.triples += o is Outcome.TRIPLE
        line.hr += o is Outcome.HOME_RUN
        line.rbi += e.runs_scored
        line.bb += o in WALKS
        line.k += o in STRIKEOUTS
        line.hbp += o is Outcome.HIT_BY_PITCH
        line.sac += o in SACRIFICES

    for player_id, runs in runs_by_player(snapshot.events).items():
        if player_id in lines:
            lines[player_id].r = runs

    order: dict[str, int] = {}
    for entry in lineup:
        order.setdefault(entry.player_id, entry.batting_order or 99)
    players = sorted((line for line in lines.values() if line.participated),
                     key=lambda line: order.get(line.player_id, 99))
    for line in players:
        line.avg = format_avg(line.h, line.ab)

    totals = BattingLine(player_id="TOTALS", player_name="Totals")
    for field in ("ab", "r", "h", "doubles", "triples", "hr", "rbi", "bb", "k", "hbp", "sac"):
        setattr(totals, field, sum(getattr(p, field) for p in players))
    totals.avg = format_avg(totals.h, totals.ab)
    return TeamBatting(team_id=team_id, team_name=team_name, players=players, totals=totals)


# ---------------------------------------------------------------------------
# Pitching
# ---------------------------------------------------------------------------

def pitching_lines(snapshot: GameSnapshot, half: Half) -> TeamPitching:
    """Pitching lines for the side fielding in ``half``.

    Events without a pitcher id are charged to the last known pitcher,
    starting from the first pitcher in the lineup.  Outs count at most
    three per half-inning.
    """
    lineup = snapshot.fielding_lineup(half)
    summary = snapshot.summary
    team_id = summary.fielding_team_id(half)
    team_name = summary.home_team_name if half is Half.TOP else summary.away_team_name

    timeline = sorted((e for e in lineup if e.fielding_position == 1),
                      key=lambda e: e.entered_inning or 0)
    entries = {e.player_id: e for e in lineup}
    lines: dict[str, PitchingLine] = {}
    for entry in timeline:
        lines.setdefault(entry.player_id, PitchingLine(
            player_id=entry.player_id, player_name=entry.player_name or UNKNOWN,
            jersey_number=entry.jersey_number))

    events = sorted((e for e in active_events(snapshot.events) if e.inning_half is half),
                    key=lambda e: (e.inning, e.sequence_number))
    current = timeline[0].player_id if timeline else None
    half_outs: dict[tuple[int, Half], int] = {}
    for e in events:
        if e.pitcher_id:
            current = e.pitcher_id
        if current is None:
            continue
        line = lines.get(current)
        if line is None:
            entry = entries.get(current)
            line = PitchingLine(
                player_id=current,
                player_name=(entry.player_name if entry and entry.player_name else UNKNOWN),
                jersey_number=entry.jersey_number if entry else None)
            lines[current] = line

        prior = half_outs.get(e.half_key, 0)
        outs = min(max(0, e.outs_after - e.outs_before), max(0, 3 - prior))
        half_outs[e.half_key] = prior + outs
        line.ip_outs += outs
        line.h += is_hit(e.outcome)
        line.r += e.runs_scored
        line.bb += e.outcome in WALKS
        line.k += e.outcome in STRIKEOUTS
        line.hr += e.outcome is Outcome.HOME_RUN
        line.hbp += e.outcome is Outcome.HIT_BY_PITCH

    pitchers = [line for line in lines.values() if line.pitched]
    for line in pitchers:
        line.ip = format_ip(line.ip_outs)
    totals = PitchingLine(player_id="TOTALS", player_name="Totals")
    for field in ("ip_outs", "h", "r", "bb", "k", "hr", "hbp"):
        setattr(totals, field, sum(getattr(p, field) for p in pitchers))
    totals.ip = format_ip(totals.ip_outs)
    return TeamPitching(team_id=team_id, team_name=team_name, pitchers=pitchers, totals=totals)


# ---------------------------------------------------------------------------
# Summaries and feeds
# ---------------------------------------------------------------------------

def scoring_summary(snapshot: GameSnapshot) -> list[ScoringSummaryEntry]:
    names = snapshot.player_names()
    summary = snapshot.summary
    grouped: dict[tuple[int, Half], list[GameEvent]] = {}
    for e in active_events(snapshot.events):
        if e.runs_scored > 0:
            grouped.setdefault(e.half_key, []).append(e)

    entries = []
    for (inning, half), plays in grouped.items():
        team = summary.away_team_name if half is Half.TOP else summary.home_team_name
        runs = sum(e.runs_scored for e in plays)
        entries.append(ScoringSummaryEntry(
            inning=inning,
            inning_half=half,
            team_name=team,
            runs=runs,
            batters=[names.get(e.batter_id, UNKNOWN) for e in plays],
            description=(f"{team} scored {runs} run{'' if runs == 1 else 's'} "
                         f"in the {half.value} of the {ordinal(inning)}"),
        ))
    entries.sort(key=lambda s: (s.inning, s.inning_half is Half.BOTTOM))
    return entries


def describe_key_play(event: GameEvent, batter: str) -> str:
    where = f"({half_label(event.inning_half)} {event.inning})"
    match event.outcome:
        case Outcome.HOME_RUN:
            rbi = event.runs_scored
            if rbi >= 4:
                return f"{batter} hits a grand slam! {where}"
            if rbi > 1:
                return f"{batter} hits a {rbi}-run homer {where}"
            return f"{batter} hits a solo home run {where}"
        case Outcome.TRIPLE:
            rbi = f", {event.runs_scored} RBI" if event.runs_scored else ""
            return f"{batter} triples{rbi} {where}"
        case Outcome.ERROR:
            return f"Error on play involving {batter} {where}"
        case Outcome.DOUBLE_PLAY:
            seq = f" ({event.fielding_sequence})" if event.fielding_sequence else ""
            return f"Double play{seq} {where}"
        case Outcome.TRIPLE_PLAY:
            return f"Triple play! {where}"
        case _:
            return f"{event.outcome.label} by {batter} {where}"


def key_plays(events: list[GameEvent], names: dict[str, str]) -> list[KeyPlay]:
    return [
        KeyPlay(event_id=e.id, outcome=e.outcome,
                description=describe_key_play(e, names.get(e.batter_id, UNKNOWN)))
        for e in active_events(events) if e.outcome in KEY_PLAY_OUTCOMES
    ]


def _play_line(e: GameEvent, names: dict[str, str]) -> PlayLine:
    return PlayLine(event_id=e.id, sequence_number=e.sequence_number, inning=e.inning,
                    inning_half=e.inning_half, label=e.outcome.label,
                    batter_name=names.get(e.batter_id, UNKNOWN) if e.batter_id else "",
                    runs_scored=e.runs_scored, outs_after=e.outs_after)


def recent_plays(events: list[GameEvent], limit: int = 5,
                 names: dict[str, str] | None = None) -> list[PlayLine]:
    """Most recent active plays, newest first, one entry per event id."""
    names = names or {}
    seen: set[str] = set()
    plays = []
    for e in reversed(active_events(events)):
        if e.id in seen:
            continue
        seen.add(e.id)
        plays.append(_play_line(e, names))
        if len(plays) >= limit:
            break
    return plays


def play_log(events: list[GameEvent], names: dict[str, str] | None = None) -> list[HalfInningLog]:
    """Active plays grouped by half-inning, e.g. "Top of the 3rd"."""
    names = names or {}
    groups: list[HalfInningLog] = []
    current = None
    for e in active_events(events):
        if e.half_key != current:
            current = e.half_key
            header = f"{'Top' if e.inning_half is Half.TOP else 'Bottom'} of the {ordinal(e.inning)}"
            groups.append(HalfInningLog(header=header, plays=[]))
        groups[-1].plays.append(_play_line(e, names))
    return groups


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------

def render_live_view(snapshot: GameSnapshot, recent_limit: int = 5) -> LiveView:
    summary = snapshot.summary
    names = snapshot.player_names()
    state: DerivedState = derive_current_state(snapshot.events, summary.inning,
                                               summary.inning_half)
    return LiveView(
        summary=summary,
        outs=state.outs,
        runners=state.runners,
        line_score=line_score(snapshot),
        away_batting=batting_lines(snapshot, Half.TOP),
        home_batting=batting_lines(snapshot, Half.BOTTOM),
        home_pitching=pitching_lines(snapshot, Half.TOP),
        away_pitching=pitching_lines(snapshot, Half.BOTTOM),
        scoring_summary=scoring_summary(snapshot),
        key_plays=key_plays(snapshot.events, names),
        recent_plays=recent_plays(snapshot.events, recent_limit, names),
        play_log=play_log(snapshot.events, names),
    )
