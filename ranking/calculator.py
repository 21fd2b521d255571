"""
대회 순위표 계산 모듈

팀별 라운드 결과를 합산하여 순위표를 만든다.
- 순위 포인트는 저장된 순위로 현재 점수 규칙에서 다시 계산
- 총점 → 타이브레이커 순서 → 입력 순서로 정렬
- 올림픽 방식 순위 (동점이면 같은 순위, 다음 순위는 건너뜀)
- 일차별 범위 계산 (앞선 일차들의 라운드 수 합)
- 선수별 킬 순위
"""
import json
import re
from datetime import datetime
from typing import List, Dict, Any, Optional, Tuple, Callable, Sequence
from dataclasses import dataclass, asdict
from loguru import logger

from data_pipeline.schemas import (
    Player,
    Team,
    RoundResult,
    ScoringRules,
    TournamentConfig,
)


# =====================================================
# 상수 정의
# =====================================================

# 타이브레이커 이름 → StandingsRow 필드
TIEBREAKER_FIELDS = {
    "placementPoints": "placement_points",
    "wins": "wins",
    "killPoints": "kill_points",
    "bonusPoints": "bonus_points",
    "totalKills": "total_kills",
    "kills": "total_kills",
    "playedRounds": "played_rounds",
}

UNKNOWN_PLAYER_NAME = "Unknown"
UNRANKED_TEAM_ORDER = 999

RoundRange = Tuple[int, int]

_ROUND_KEY_PATTERN = re.compile(r"^round(\d+)$")


# =====================================================
# 데이터 클래스
# =====================================================

@dataclass
class StandingsRow:
    """팀 순위표 한 줄"""
    team_id: str
    team_name: str
    total_points: int = 0
    placement_points: int = 0
    kill_points: int = 0
    total_kills: int = 0
    wins: int = 0
    bonus_points: int = 0
    penalty_points: int = 0
    played_rounds: int = 0
    rank: int = 0


@dataclass
class PlayerKillRow:
    """선수 킬 순위 한 줄"""
    player_id: str
    player_name: str
    team_id: str
    team_name: str
    total_kills: int = 0
    team_rank: Optional[int] = None
    rank: int = 0


# =====================================================
# 헬퍼
# =====================================================

def round_number(key: str) -> Optional[int]:
    """'round3' → 3"""
    match = _ROUND_KEY_PATTERN.match(key)
    return int(match.group(1)) if match else None


def _rounds_in_range(results: Dict[str, Any], round_range: Optional[RoundRange]) -> List[str]:
    """범위 안의 라운드 키 (라운드 번호 순)"""
    numbered = []
    for key in results:
        number = round_number(key)
        if number is None:
            continue
        if round_range is None or round_range[0] <= number <= round_range[1]:
            numbered.append((number, key))
    return [key for _, key in sorted(numbered)]


def _as_result(data: Any) -> RoundResult:
    if isinstance(data, RoundResult):
        return data
    return RoundResult.model_validate(data or {})


def resolve_tiebreakers(names: Sequence[str]) -> List[str]:
    """타이브레이커 이름 → 필드명 (모르는 이름은 경고 후 무시)"""
    fields = []
    for name in names:
        field_name = TIEBREAKER_FIELDS.get(name)
        if field_name is None:
            logger.warning(f"⚠️ 알 수 없는 타이브레이커 무시: {name}")
            continue
        fields.append(field_name)
    return fields


def assign_olympic_ranks(rows: List[Any], value: Callable[[Any], Any]) -> None:
    """
    정렬된 목록에 올림픽 방식 순위 부여

    앞 항목과 값이 같으면 같은 순위, 다르면 (인덱스 + 1).
    예: [30, 30, 20] → 1, 1, 3
    """
    for i, row in enumerate(rows):
        if i > 0 and value(row) == value(rows[i - 1]):
            row.rank = rows[i - 1].rank
        else:
            row.rank = i + 1


# =====================================================
# 순위표 계산
# =====================================================

def compute_standings(
    teams: List[Team],
    results: Dict[str, Dict[str, Any]],
    rules: Optional[ScoringRules] = None,
    round_range: Optional[RoundRange] = None,
) -> List[StandingsRow]:
    """
    팀 순위표 계산

    Args:
        teams: 팀 목록 (이 순서가 최종 동점 처리 기준)
        results: {"round1": {team_id: RoundResult | dict}, ...}
        rules: 점수 규칙 (None이면 기본값)
        round_range: (시작, 끝) 라운드 번호, 양끝 포함. None이면 전체

    Returns:
        정렬 + 순위가 부여된 StandingsRow 목록
    """
    rules = rules or ScoringRules()
    round_keys = _rounds_in_range(results, round_range)

    rows: List[StandingsRow] = []
    for team in teams:
        row = StandingsRow(team_id=team.id, team_name=team.name)

        for key in round_keys:
            data = (results.get(key) or {}).get(team.id)
            if data is None:
                continue
            res = _as_result(data)

            placement = rules.placement_points(res.rank)
            kill_points = rules.kill_points(res.kills)

            row.placement_points += placement
            row.kill_points += kill_points
            row.total_kills += res.kills
            row.bonus_points += res.bonus
            row.penalty_points += res.penalty
            row.total_points += placement + kill_points + res.bonus - res.penalty
            if res.rank == 1:
                row.wins += 1
            row.played_rounds += 1

        rows.append(row)

    tiebreak_fields = resolve_tiebreakers(rules.tiebreakers)

    # sorted()는 안정 정렬이므로 완전 동점이면 입력 순서 유지
    rows = sorted(rows, key=lambda r: (
        -r.total_points,
        *(-getattr(r, f) for f in tiebreak_fields),
    ))

    # 순위는 총점만으로 결정 (타이브레이커는 표시 순서에만 영향)
    assign_olympic_ranks(rows, lambda r: r.total_points)
    return rows


def compute_player_kill_ranking(
    teams: List[Team],
    players: List[Player],
    results: Dict[str, Dict[str, Any]],
    round_range: Optional[RoundRange] = None,
    standings: Optional[List[StandingsRow]] = None,
) -> List[PlayerKillRow]:
    """
    선수별 킬 순위

    팀 멤버별로 범위 안의 memberKills를 합산. 킬이 0인 선수는 제외.
    정렬: 킬 내림차순 → 소속 팀의 순위표 위치. 순위는 킬 기준 올림픽 방식.
    선수 정보가 없는 멤버 ID는 "Unknown"으로 표시한다.
    """
    player_names = {p.id: p.name for p in players}
    round_keys = _rounds_in_range(results, round_range)

    team_order: Dict[str, int] = {}
    team_ranks: Dict[str, int] = {}
    for index, s in enumerate(standings or []):
        team_order[s.team_id] = index
        team_ranks[s.team_id] = s.rank

    rows: List[PlayerKillRow] = []
    for team in teams:
        for member_id in team.member_ids:
            total = 0
            for key in round_keys:
                data = (results.get(key) or {}).get(team.id)
                if data is None:
                    continue
                total += _as_result(data).member_kills.get(member_id) or 0

            if total <= 0:
                continue

            rows.append(PlayerKillRow(
                player_id=member_id,
                player_name=player_names.get(member_id) or UNKNOWN_PLAYER_NAME,
                team_id=team.id,
                team_name=team.name,
                total_kills=total,
                team_rank=team_ranks.get(team.id),
            ))

    rows.sort(key=lambda p: (-p.total_kills, team_order.get(p.team_id, UNRANKED_TEAM_ORDER)))
    assign_olympic_ranks(rows, lambda p: p.total_kills)
    return rows


# =====================================================
# 순위표 계산기 클래스
# =====================================================

class StandingsCalculator:
    """대회 순위표 계산기"""

    def __init__(self, tournament: TournamentConfig, teams: List[Team], players: Optional[List[Player]] = None):
        self.tournament = tournament
        self.teams = teams
        self.players = players or []
        self.results: Dict[str, Dict[str, RoundResult]] = {}

    def load_results(self, results: Dict[str, Dict[str, Any]]):
        """저장소 결과 로드 ({round_key: {team_id: data}})"""
        self.results = {
            key: {team_id: _as_result(data) for team_id, data in (teams or {}).items()}
            for key, teams in results.items()
        }
        count = sum(len(v) for v in self.results.values())
        logger.info(f"결과 로드 완료: {len(self.results)}라운드, {count}건")

    def round_range(self, day_index: Optional[int] = None) -> Optional[RoundRange]:
        # 일정이 비어 있으면 저장된 라운드 전체
        if day_index is None and self.tournament.total_rounds == 0:
            return None
        return self.tournament.round_range(day_index)

    def calculate_standings(self, day_index: Optional[int] = None) -> List[StandingsRow]:
        """순위표 (day_index가 None이면 전체 일정)"""
        return compute_standings(
            self.teams,
            self.results,
            self.tournament.scoring_rules,
            self.round_range(day_index),
        )

    def calculate_player_ranking(self, day_index: Optional[int] = None) -> List[PlayerKillRow]:
        standings = self.calculate_standings(day_index)
        return compute_player_kill_ranking(
            self.teams,
            self.players,
            self.results,
            self.round_range(day_index),
            standings,
        )

    def day_label(self, day_index: Optional[int]) -> str:
        if day_index is None:
            return "Total"
        if 0 <= day_index < len(self.tournament.schedule):
            return self.tournament.schedule[day_index].name or f"Day {day_index + 1}"
        return f"Day {day_index + 1}"

    def export_standings(self, output_file: str, day_index: Optional[int] = None):
        """순위표 + 선수 킬 순위를 JSON으로 내보내기"""
        round_range = self.round_range(day_index)
        standings = self.calculate_standings(day_index)
        player_ranking = self.calculate_player_ranking(day_index)

        export_data = {
            "meta": {
                "generated_at": datetime.now().isoformat(),
                "tournament_id": self.tournament.id,
                "tournament_name": self.tournament.name,
                "scope": self.day_label(day_index),
                "rounds": {"start": round_range[0], "end": round_range[1]} if round_range else None,
                "total_teams": len(standings),
            },
            "standings": [asdict(row) for row in standings],
            "players": [asdict(row) for row in player_ranking],
        }

        with open(output_file, "w", encoding="utf-8") as f:
            json.dump(export_data, f, ensure_ascii=False, indent=2)

        logger.info(f"순위표 내보내기 완료: {output_file}")

    def print_standings_summary(self, standings: List[StandingsRow], title: str = "", top_n: int = 20):
        """순위표 요약 출력"""
        print(f"\n{'='*72}")
        print(f" {title}")
        print(f"{'='*72}")
        print(f"{'순위':>4} {'팀':<18} {'총점':>6} {'순위P':>6} {'킬P':>5} {'킬':>4} {'승':>3} {'보너스':>6} {'라운드':>6}")
        print(f"{'-'*72}")

        for r in standings[:top_n]:
            name = r.team_name
            if len(name) > 16:
                name = name[:16] + ".."
            print(f"{r.rank:>4} {name:<18} {r.total_points:>6} {r.placement_points:>6} {r.kill_points:>5} {r.total_kills:>4} {r.wins:>3} {r.bonus_points:>6} {r.played_rounds:>6}")

    def print_player_summary(self, ranking: List[PlayerKillRow], title: str = "", top_n: int = 20):
        """선수 킬 순위 출력"""
        print(f"\n{'='*60}")
        print(f" {title}")
        print(f"{'='*60}")
        print(f"{'순위':>4} {'선수':<16} {'팀':<18} {'킬':>4} {'팀순위':>6}")
        print(f"{'-'*60}")

        for p in ranking[:top_n]:
            team_rank = p.team_rank if p.team_rank is not None else "-"
            print(f"{p.rank:>4} {p.player_name:<16} {p.team_name:<18} {p.total_kills:>4} {team_rank:>6}")
