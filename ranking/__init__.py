"""
대회 순위표

총점 + 타이브레이커 정렬, 올림픽 방식 순위, 선수 킬 순위
"""
from .calculator import (
    StandingsCalculator,
    StandingsRow,
    PlayerKillRow,
    compute_standings,
    compute_player_kill_ranking,
    assign_olympic_ranks,
    resolve_tiebreakers,
    round_number,
    TIEBREAKER_FIELDS,
    UNKNOWN_PLAYER_NAME,
)

__all__ = [
    "StandingsCalculator",
    "StandingsRow",
    "PlayerKillRow",
    "compute_standings",
    "compute_player_kill_ranking",
    "assign_olympic_ranks",
    "resolve_tiebreakers",
    "round_number",
    "TIEBREAKER_FIELDS",
    "UNKNOWN_PLAYER_NAME",
]
