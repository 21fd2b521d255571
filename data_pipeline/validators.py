"""
라운드 결과 검증

저장 직전에 운영자 입력 / OCR 집계 결과를 검증한다.
- 스키마 검증 (Pydantic)
- 음수 값 → 저장 불가
- 비정상적으로 큰 값, 순위표 밖 순위, 팀 인원 초과 → 경고
"""

from typing import List, Dict, Any, Optional, Union
from pydantic import ValidationError as PydanticValidationError
from loguru import logger

from .normalizer import parse_optional_int
from .schemas import (
    RoundResult,
    ScoringRules,
    ValidationResult,
    ValidationError,
    ValidationSeverity,
    DEFAULT_MAX_MEMBERS,
)

# 한 라운드에서 한 명이 이 이상 킬을 기록하면 오인식 의심
MAX_PLAUSIBLE_MEMBER_KILLS = 30


class ResultValidator:
    """
    팀별 라운드 결과 검증

    검증은 값을 고치지 않는다. 문제를 ValidationResult로 돌려주기만 한다.
    """

    def __init__(self, rules: Optional[ScoringRules] = None, max_members: int = DEFAULT_MAX_MEMBERS):
        self.rules = rules or ScoringRules()
        self.max_members = max_members

    def validate_result(self, data: Union[Dict[str, Any], RoundResult]) -> ValidationResult:
        """결과 1건 검증"""
        errors: List[ValidationError] = []
        warnings: List[ValidationError] = []

        if isinstance(data, RoundResult):
            data = data.to_record()

        try:
            RoundResult(**data)
        except PydanticValidationError as e:
            for error in e.errors():
                errors.append(ValidationError(
                    error_type="SCHEMA_VALIDATION_FAILED",
                    severity=ValidationSeverity.CRITICAL,
                    message=error["msg"],
                    field=".".join(str(loc) for loc in error["loc"]),
                    value=error.get("input"),
                    suggestion="데이터 형식을 확인하세요",
                ))

        # 음수 검사 (rank, bonus, penalty)
        for field in ("rank", "bonus", "penalty"):
            value = parse_optional_int(data.get(field))
            if value is not None and value < 0:
                errors.append(ValidationError(
                    error_type="NEGATIVE_VALUE",
                    severity=ValidationSeverity.HIGH,
                    message=f"{field} 값이 음수입니다: {value}",
                    field=field,
                    value=value,
                    suggestion="0 이상의 값을 입력하세요",
                ))

        rank = parse_optional_int(data.get("rank"))
        if rank is not None and rank > len(self.rules.rank_points):
            warnings.append(ValidationError(
                error_type="RANK_OUT_OF_TABLE",
                severity=ValidationSeverity.MEDIUM,
                message=f"순위 포인트 표 밖의 순위입니다: {rank}",
                field="rank",
                value=rank,
                suggestion="순위 포인트는 0점으로 계산됩니다",
            ))

        member_kills = data.get("memberKills") or data.get("member_kills") or {}
        for member_id, raw in member_kills.items():
            kills = parse_optional_int(raw)
            if kills is None:
                continue
            if kills < 0:
                errors.append(ValidationError(
                    error_type="NEGATIVE_KILLS",
                    severity=ValidationSeverity.HIGH,
                    message=f"킬 수가 음수입니다: {kills}",
                    field=f"memberKills.{member_id}",
                    value=kills,
                ))
            elif kills > MAX_PLAUSIBLE_MEMBER_KILLS:
                warnings.append(ValidationError(
                    error_type="KILLS_TOO_HIGH",
                    severity=ValidationSeverity.MEDIUM,
                    message=f"킬 수가 비정상적으로 큽니다: {kills}",
                    field=f"memberKills.{member_id}",
                    value=kills,
                    suggestion="OCR 오인식 여부를 확인하세요",
                ))

        if len(member_kills) > self.max_members:
            warnings.append(ValidationError(
                error_type="TOO_MANY_MEMBERS",
                severity=ValidationSeverity.LOW,
                message=f"팀 인원({self.max_members}명)보다 많은 멤버 기록: {len(member_kills)}",
                field="memberKills",
                value=len(member_kills),
                suggestion="게스트 또는 중복 항목을 확인하세요",
            ))

        return ValidationResult(
            is_valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
        )

    def validate_round(self, results: Dict[str, Union[Dict[str, Any], RoundResult]]) -> Dict[str, ValidationResult]:
        """
        한 라운드의 팀별 결과 검증

        같은 순위를 가진 팀이 둘 이상이면 양쪽 모두에 경고를 붙인다.
        """
        report = {team_id: self.validate_result(data) for team_id, data in results.items()}

        by_rank: Dict[int, List[str]] = {}
        for team_id, data in results.items():
            if isinstance(data, RoundResult):
                rank = data.rank
            else:
                rank = parse_optional_int(data.get("rank")) or 0
            if rank > 0:
                by_rank.setdefault(rank, []).append(team_id)

        for rank, team_ids in by_rank.items():
            if len(team_ids) < 2:
                continue
            logger.warning(f"⚠️ 순위 {rank} 중복: {team_ids}")
            for team_id in team_ids:
                report[team_id].warnings.append(ValidationError(
                    error_type="DUPLICATE_RANK",
                    severity=ValidationSeverity.MEDIUM,
                    message=f"같은 라운드에 순위 {rank} 팀이 여러 개입니다",
                    field="rank",
                    value=rank,
                    suggestion="순위 입력을 확인하세요",
                ))

        return report
