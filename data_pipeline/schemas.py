"""
대회 데이터 스키마 정의

Pydantic 모델을 사용하여 Supabase 레코드를 단일 스키마로 변환
- camelCase / snake_case 키 모두 허용 (호스팅 테이블에 두 형식이 섞여 있음)
- 누락 필드는 문서화된 기본값으로 채움
- 저장 시에는 기존 테이블 형식(camelCase)으로 내보냄
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any, Tuple
from datetime import datetime
from enum import Enum

from .normalizer import parse_optional_int, to_int


# ==================== 점수 규칙 기본값 ====================

DEFAULT_KILL_POINT = 1
DEFAULT_RANK_POINTS = [15, 12, 10, 8, 6, 4, 2, 1] + [0] * 12  # 1위 ~ 20위
DEFAULT_TIEBREAKERS = ["placementPoints", "wins", "killPoints", "bonusPoints"]
DEFAULT_MAX_TEAMS = 20
DEFAULT_MAX_MEMBERS = 5


def round_key(round_number: int) -> str:
    """라운드 번호 → 결과 저장 키 (round1, round2, ...)"""
    return f"round{round_number}"


class ValidationSeverity(str, Enum):
    """검증 오류 심각도"""
    CRITICAL = "critical"   # 저장 불가
    HIGH = "high"           # 저장 불가, 수동 검토 필요
    MEDIUM = "medium"       # 저장 가능, 경고 표시
    LOW = "low"             # 저장 가능, 로그만
    INFO = "info"           # 정보성


class ValidationError(BaseModel):
    """검증 오류"""
    error_type: str = Field(..., description="오류 유형")
    severity: ValidationSeverity = Field(..., description="심각도")
    message: str = Field(..., description="오류 메시지")
    field: Optional[str] = Field(None, description="관련 필드")
    value: Optional[Any] = Field(None, description="문제가 된 값")
    suggestion: Optional[str] = Field(None, description="해결 제안")


class ValidationResult(BaseModel):
    """검증 결과"""
    is_valid: bool = Field(default=True, description="최종 유효성")
    errors: List[ValidationError] = Field(default_factory=list)
    warnings: List[ValidationError] = Field(default_factory=list)
    validated_at: datetime = Field(default_factory=datetime.now)

    @property
    def has_critical_errors(self) -> bool:
        return any(e.severity in [ValidationSeverity.CRITICAL, ValidationSeverity.HIGH] for e in self.errors)

    @property
    def can_save(self) -> bool:
        """저장 가능 여부"""
        return not self.has_critical_errors


# ==================== 로스터 ====================

class Player(BaseModel):
    """선수"""
    id: str = Field(..., description="선수 고유 ID")
    name: str = Field(default="", description="표시 이름")
    tags: List[str] = Field(default_factory=list, description="역할/라벨")

    @model_validator(mode="before")
    @classmethod
    def fill_name_from_profile(cls, data: Any) -> Any:
        # players 테이블이 없을 때 profiles(username)로 대체되는 경우
        if isinstance(data, dict) and not data.get("name") and data.get("username"):
            data = {**data, "name": data["username"]}
        return data

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return str(v)

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("tags", mode="before")
    @classmethod
    def coerce_tags(cls, v: Any) -> List[str]:
        return [str(t) for t in (v or [])]


class Team(BaseModel):
    """팀"""
    id: str = Field(..., description="팀 고유 ID")
    name: str = Field(default="", description="팀명")
    tag: Optional[str] = Field(None, description="짧은 대문자 태그")
    member_ids: List[str] = Field(default_factory=list, alias="memberIds", description="멤버 선수 ID (순서 유지)")
    owner_id: Optional[str] = Field(None, alias="ownerId")
    tournament_id: Optional[str] = Field(None, alias="tournamentId")
    icon: Optional[str] = Field(None, description="아이콘 이미지 참조")

    @field_validator("id", "owner_id", "tournament_id", mode="before")
    @classmethod
    def coerce_ids(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("member_ids", mode="before")
    @classmethod
    def coerce_member_ids(cls, v: Any) -> List[str]:
        return [str(m) for m in (v or []) if m is not None]

    class Config:
        populate_by_name = True


# ==================== 점수 규칙 ====================

class ScoringRules(BaseModel):
    """
    대회별 점수 규칙

    rank_points[rank - 1] 이 순위 포인트. 표 밖의 순위나 0(미진행)은 0점.
    필드가 없거나 null이면 기본값으로 대체된다.
    """
    kill_point: int = Field(default=DEFAULT_KILL_POINT, alias="killPoint", description="킬당 포인트")
    rank_points: List[int] = Field(
        default_factory=lambda: list(DEFAULT_RANK_POINTS),
        alias="rankPoints",
        description="순위 포인트 (0번 = 1위)",
    )
    tiebreakers: List[str] = Field(
        default_factory=lambda: list(DEFAULT_TIEBREAKERS),
        description="동점 처리 우선순위",
    )

    @model_validator(mode="before")
    @classmethod
    def unpack_legacy_keys(cls, data: Any) -> Any:
        """null 제거 + 구버전 키(killPoints, placement) 처리"""
        if not isinstance(data, dict):
            return data
        data = {k: v for k, v in data.items() if v is not None}

        if "killPoint" not in data and "kill_point" not in data and "killPoints" in data:
            data["killPoint"] = data["killPoints"]

        placement = data.get("placement")
        if "rankPoints" not in data and "rank_points" not in data and isinstance(placement, dict):
            ordered = sorted(placement.items(), key=lambda kv: to_int(kv[0]))
            data["rankPoints"] = [v for _, v in ordered]

        return data

    @field_validator("kill_point", mode="before")
    @classmethod
    def coerce_kill_point(cls, v: Any) -> int:
        return to_int(v, DEFAULT_KILL_POINT)

    @field_validator("rank_points", mode="before")
    @classmethod
    def coerce_rank_points(cls, v: Any) -> List[int]:
        if not isinstance(v, (list, tuple)):
            return list(DEFAULT_RANK_POINTS)
        return [to_int(p) for p in v]

    @field_validator("tiebreakers", mode="before")
    @classmethod
    def coerce_tiebreakers(cls, v: Any) -> List[str]:
        if not isinstance(v, (list, tuple)):
            return list(DEFAULT_TIEBREAKERS)
        return [str(t) for t in v if t]

    def placement_points(self, rank: Optional[int]) -> int:
        """순위 포인트 (범위 밖이면 0)"""
        if not rank or rank < 1 or rank > len(self.rank_points):
            return 0
        return self.rank_points[rank - 1]

    def kill_points(self, kills: int) -> int:
        return kills * self.kill_point

    class Config:
        populate_by_name = True


# ==================== 라운드 결과 ====================

class RoundResult(BaseModel):
    """
    팀별 라운드 결과 (팀 1개 × 라운드 1개)

    member_kills 값이 None이면 "아직 읽지 않음"이고 0과 구분된다.
    계산에서는 0으로 취급한다.
    """
    rank: int = Field(default=0, ge=0, description="순위 (0 = 미진행)")
    member_kills: Dict[str, Optional[int]] = Field(default_factory=dict, alias="memberKills")
    bonus: int = Field(default=0, description="보너스 포인트")
    penalty: int = Field(default=0, description="페널티 포인트")

    # 파생 값
    kills: int = Field(default=0, description="팀 킬 합계")
    placement_points: int = Field(default=0, alias="placementPoints")
    kill_points: int = Field(default=0, alias="killPoints")
    total_points: int = Field(default=0, alias="totalPoints")

    @model_validator(mode="before")
    @classmethod
    def unpack_legacy_keys(cls, data: Any) -> Any:
        """OCR 저장분(bonusPoints/penaltyPoints)과 수동 입력분(bonus/penalty) 통합"""
        if not isinstance(data, dict):
            return data
        data = dict(data)

        if data.get("bonus") is None and data.get("bonusPoints") is not None:
            data["bonus"] = data["bonusPoints"]
        if data.get("penalty") is None and data.get("penaltyPoints") is not None:
            data["penalty"] = data["penaltyPoints"]

        member_kills = data.get("memberKills", data.get("member_kills"))
        if data.get("kills") is None and isinstance(member_kills, dict):
            data["kills"] = sum(to_int(k) for k in member_kills.values())

        return data

    @field_validator("rank", mode="before")
    @classmethod
    def coerce_rank(cls, v: Any) -> int:
        return max(to_int(v), 0)

    @field_validator("bonus", "penalty", "kills", "placement_points", "kill_points", "total_points", mode="before")
    @classmethod
    def coerce_number(cls, v: Any) -> int:
        return to_int(v)

    @field_validator("member_kills", mode="before")
    @classmethod
    def coerce_member_kills(cls, v: Any) -> Dict[str, Optional[int]]:
        if not isinstance(v, dict):
            return {}
        return {str(mid): parse_optional_int(k) for mid, k in v.items()}

    @property
    def summed_kills(self) -> int:
        """member_kills 합계 (빈 값 = 0)"""
        return sum(k or 0 for k in self.member_kills.values())

    def to_record(self) -> Dict[str, Any]:
        """Supabase results.data 컬럼 형식"""
        return self.model_dump(by_alias=True)

    class Config:
        populate_by_name = True


# ==================== 대회 설정 ====================

class DaySchedule(BaseModel):
    """일정 (하루 단위)"""
    name: Optional[str] = Field(None, description="일차 이름")
    rounds: int = Field(default=0, description="라운드 수")

    @field_validator("rounds", mode="before")
    @classmethod
    def coerce_rounds(cls, v: Any) -> int:
        return max(to_int(v), 0)


class RoundSlot(BaseModel):
    """일정에서 생성된 라운드 하나"""
    key: str
    label: str
    day_index: int
    round_index: int
    global_round: int


class TournamentConfig(BaseModel):
    """대회 설정 (점수 규칙 + 일정)"""
    id: str = Field(..., description="대회 ID")
    name: str = Field(default="", description="대회명")
    scoring_rules: ScoringRules = Field(default_factory=ScoringRules, alias="scoringRules")
    max_teams: int = Field(default=DEFAULT_MAX_TEAMS, alias="maxTeams")
    max_members: int = Field(default=DEFAULT_MAX_MEMBERS, alias="maxMembers")
    schedule: List[DaySchedule] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return str(v)

    @field_validator("scoring_rules", mode="before")
    @classmethod
    def coerce_rules(cls, v: Any) -> Any:
        return v if v is not None else {}

    @field_validator("max_teams", mode="before")
    @classmethod
    def coerce_max_teams(cls, v: Any) -> int:
        return to_int(v, DEFAULT_MAX_TEAMS) or DEFAULT_MAX_TEAMS

    @field_validator("max_members", mode="before")
    @classmethod
    def coerce_max_members(cls, v: Any) -> int:
        return to_int(v, DEFAULT_MAX_MEMBERS) or DEFAULT_MAX_MEMBERS

    @field_validator("schedule", mode="before")
    @classmethod
    def coerce_schedule(cls, v: Any) -> list:
        return v if isinstance(v, list) else []

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "TournamentConfig":
        """
        tournaments 테이블 행 → 설정

        rules JSON 컬럼에 scoringRules, tiebreakers, maxTeams, maxMembers가 묶여 있다.
        tiebreakers는 rules 최상위 값이 scoringRules 안의 값보다 우선한다.
        """
        rules = row.get("rules") or {}
        scoring = dict(rules.get("scoringRules") or row.get("scoringRules") or {})
        tiebreakers = rules.get("tiebreakers") or row.get("tiebreakers")
        if tiebreakers is not None:
            scoring["tiebreakers"] = tiebreakers

        return cls(
            id=row["id"],
            name=row.get("name") or "",
            scoringRules=scoring,
            maxTeams=rules.get("maxTeams"),
            maxMembers=rules.get("maxMembers"),
            schedule=row.get("schedule") or [],
        )

    @property
    def total_rounds(self) -> int:
        return sum(day.rounds for day in self.schedule)

    def round_range(self, day_index: Optional[int] = None) -> Tuple[int, int]:
        """
        라운드 범위 (1부터, 양끝 포함)

        day_index가 None이면 전체. 아니면 앞선 일차들의 라운드 수를 더해서 시작점을 구한다.
        범위를 벗어난 day_index는 빈 범위 (start > end).
        """
        if day_index is None:
            return 1, self.total_rounds

        if day_index < 0 or day_index >= len(self.schedule):
            return 1, 0

        start = 1 + sum(day.rounds for day in self.schedule[:day_index])
        end = start + self.schedule[day_index].rounds - 1
        return start, end

    def round_slots(self) -> List[RoundSlot]:
        """일정 → 라운드 목록 (라벨: '<일차명> - Round i')"""
        slots = []
        global_round = 1
        for day_index, day in enumerate(self.schedule):
            day_name = day.name or f"Day {day_index + 1}"
            for i in range(1, day.rounds + 1):
                slots.append(RoundSlot(
                    key=round_key(global_round),
                    label=f"{day_name} - Round {i}",
                    day_index=day_index,
                    round_index=i,
                    global_round=global_round,
                ))
                global_round += 1
        return slots

    class Config:
        populate_by_name = True
