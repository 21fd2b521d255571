"""
라운드 결과 집계

OCR 검토가 끝난 항목들(또는 운영자 수동 입력)을 팀별 RoundResult로 합치고
포인트를 다시 계산한다. 저장소 접근 없이 순수 함수로만 구성.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Iterable

from loguru import logger

from .normalizer import parse_optional_int, to_int
from .schemas import RoundResult, ScoringRules


@dataclass
class ResultEntry:
    """집계 입력 1건 (선수 1명의 판독 결과)"""
    member_key: Optional[str]
    team_id: Optional[str]
    rank: Optional[int]
    kills: Optional[int] = None
    is_duplicate: bool = False
    item_id: Optional[str] = None

    @property
    def unresolved_reason(self) -> Optional[str]:
        if self.is_duplicate:
            return "duplicate"
        if self.rank is None:
            return "unknown_rank"
        if not self.team_id:
            return "no_team"
        return None


@dataclass
class RankAdjustment:
    """순위별 운영자 보너스/페널티"""
    bonus: int = 0
    penalty: int = 0


@dataclass
class AggregationResult:
    updated: Dict[str, RoundResult] = field(default_factory=dict)
    unresolved: List[ResultEntry] = field(default_factory=list)


def compute_points(result: RoundResult, rules: ScoringRules) -> RoundResult:
    """
    파생 값 재계산

    kills = Σ memberKills (빈 값 = 0)
    totalPoints = 순위 포인트 + 킬 × 킬당 포인트 + 보너스 - 페널티
    """
    kills = result.summed_kills
    placement = rules.placement_points(result.rank)
    kill_points = rules.kill_points(kills)
    return result.model_copy(update={
        "kills": kills,
        "placement_points": placement,
        "kill_points": kill_points,
        "total_points": placement + kill_points + result.bonus - result.penalty,
    })


def aggregate(
    existing: Dict[str, RoundResult],
    entries: Iterable[ResultEntry],
    rules: ScoringRules,
    adjustments: Optional[Dict[int, RankAdjustment]] = None,
) -> AggregationResult:
    """
    OCR 항목 → 팀별 결과

    Args:
        existing: 이 라운드에 이미 저장된 결과 (team_id → RoundResult)
        entries: 검토가 끝난 항목들
        rules: 점수 규칙
        adjustments: 순위별 보너스/페널티 (기존 값에 더해짐)

    Returns:
        updated에는 이번 배치에 등장한 팀만 들어간다.
        순위/팀을 알 수 없거나 중복인 항목은 unresolved로 따로 돌려준다.
    """
    adjustments = adjustments or {}
    result = AggregationResult()

    team_ranks: Dict[str, int] = {}
    team_kills: Dict[str, Dict[str, Optional[int]]] = {}

    for entry in entries:
        reason = entry.unresolved_reason
        if reason:
            logger.debug(f"집계 제외 ({reason}): item={entry.item_id} member={entry.member_key}")
            result.unresolved.append(entry)
            continue

        previous_rank = team_ranks.setdefault(entry.team_id, entry.rank)
        if previous_rank != entry.rank:
            logger.warning(
                f"⚠️ 팀 {entry.team_id}: 순위 충돌 {previous_rank} vs {entry.rank} (먼저 나온 값 사용)"
            )

        kills = team_kills.setdefault(entry.team_id, {})
        if entry.member_key:
            if entry.kills is not None or entry.member_key not in kills:
                kills[entry.member_key] = entry.kills

    for team_id, rank in team_ranks.items():
        base = existing.get(team_id) or RoundResult()

        member_kills = dict(base.member_kills)
        for member_key, kills in team_kills[team_id].items():
            # 빈 값은 기존 값을 지우지 않는다
            if kills is None and member_key in member_kills:
                continue
            member_kills[member_key] = kills

        adjustment = adjustments.get(rank, RankAdjustment())
        merged = base.model_copy(update={
            "rank": rank,
            "member_kills": member_kills,
            "bonus": base.bonus + adjustment.bonus,
            "penalty": base.penalty + adjustment.penalty,
        })
        result.updated[team_id] = compute_points(merged, rules)

    logger.info(
        f"📊 집계 완료: {len(result.updated)}팀 갱신, 미해결 {len(result.unresolved)}건"
    )
    return result


# ===== 수동 입력 =====

def build_manual_result(
    rank: Any,
    member_kills: Dict[str, Any],
    rules: ScoringRules,
    bonus: Any = 0,
    penalty: Any = 0,
) -> Optional[RoundResult]:
    """
    운영자 수동 입력 → RoundResult (기존 값을 대체)

    순위가 비어 있으면 None. 킬 입력칸이 비어 있으면 None으로 남겨 0과 구분한다.
    """
    parsed_rank = parse_optional_int(rank)
    if not parsed_rank or parsed_rank < 1:
        return None

    result = RoundResult(
        rank=parsed_rank,
        member_kills={str(mid): parse_optional_int(k) for mid, k in (member_kills or {}).items()},
        bonus=to_int(bonus),
        penalty=to_int(penalty),
    )
    return compute_points(result, rules)


def build_manual_round(inputs: Dict[str, Dict[str, Any]], rules: ScoringRules) -> Dict[str, RoundResult]:
    """
    한 라운드의 수동 입력 폼 → 저장할 결과

    inputs: team_id → {"rank", "memberKills", "bonus", "penalty"}
    순위를 입력하지 않은 팀은 건너뛴다 (다른 운영자가 입력한 값을 덮어쓰지 않도록).
    """
    results: Dict[str, RoundResult] = {}
    for team_id, form in inputs.items():
        built = build_manual_result(
            form.get("rank"),
            form.get("memberKills") or form.get("member_kills") or {},
            rules,
            bonus=form.get("bonus", 0),
            penalty=form.get("penalty", 0),
        )
        if built is None:
            logger.debug(f"수동 입력 건너뜀 (순위 없음): {team_id}")
            continue
        results[team_id] = built
    return results
