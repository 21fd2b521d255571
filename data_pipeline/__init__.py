"""
데이터 파이프라인 패키지

라운드 결과 처리:
- schemas: 대회/팀/선수/라운드 결과 스키마
- normalizer: OCR 텍스트 정규화 테이블
- validators: 저장 전 결과 검증
- aggregator: OCR 항목 / 수동 입력 → 팀별 결과
"""

from .schemas import (
    Player,
    Team,
    ScoringRules,
    RoundResult,
    DaySchedule,
    RoundSlot,
    TournamentConfig,
    ValidationResult,
    ValidationError,
    ValidationSeverity,
    round_key,
)
from .validators import ResultValidator
from .aggregator import (
    ResultEntry,
    RankAdjustment,
    AggregationResult,
    aggregate,
    compute_points,
    build_manual_result,
    build_manual_round,
)

__all__ = [
    # Schemas
    "Player",
    "Team",
    "ScoringRules",
    "RoundResult",
    "DaySchedule",
    "RoundSlot",
    "TournamentConfig",
    "ValidationResult",
    "ValidationError",
    "ValidationSeverity",
    "round_key",
    # Validators
    "ResultValidator",
    # Aggregator
    "ResultEntry",
    "RankAdjustment",
    "AggregationResult",
    "aggregate",
    "compute_points",
    "build_manual_result",
    "build_manual_round",
]
