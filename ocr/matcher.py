"""
OCR 선수명 매칭

노이즈가 섞인 인식 텍스트를 로스터의 선수와 매칭한다.
단계별로 로스터 전체를 훑고, 먼저 맞은 단계가 이긴다.

1. exact: 정리된 이름이 같음
2. normalized: 팀 태그 오인식 보정 후 같음
3. contain: 한쪽이 다른 쪽을 포함 (후보 3글자 이상)
4. fuzzy: 편집 거리 최소값이 허용치 이하
"""
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from loguru import logger
from rapidfuzz.distance import Levenshtein

from data_pipeline.normalizer import clean_name, normalize_tag_misreads
from data_pipeline.schemas import Player

DEFAULT_FUZZY_RATIO = 0.45
MIN_INPUT_LENGTH = 2
MIN_CONTAIN_LENGTH = 3

MATCH_EXACT = "exact"
MATCH_NORMALIZED = "normalized"
MATCH_CONTAIN = "contain"
MATCH_FUZZY = "fuzzy"
MATCH_UNKNOWN = "unknown"


@dataclass
class MatchResult:
    """매칭 결과. player가 None이면 미확인"""
    original_text: str
    player: Optional[Player] = None
    distance: Optional[int] = None
    match_type: str = MATCH_UNKNOWN

    @property
    def is_unknown(self) -> bool:
        return self.player is None

    @property
    def display_name(self) -> str:
        return self.player.name if self.player else self.original_text


def max_allowed_distance(candidate_length: int, ratio: float = DEFAULT_FUZZY_RATIO) -> int:
    """허용 편집 거리 = round(길이 × 비율), .5는 올림"""
    return int(math.floor(candidate_length * ratio + 0.5))


def unknown(text: str) -> MatchResult:
    return MatchResult(original_text=text)


class NameMatcher:
    """
    로스터 기반 이름 매처

    로스터 쪽 정리 결과는 생성 시 한 번만 계산한다. match()는 예외를 던지지 않는다.
    """

    def __init__(self, players: Sequence[Player], fuzzy_ratio: float = DEFAULT_FUZZY_RATIO):
        self.fuzzy_ratio = fuzzy_ratio
        self._entries: List[Tuple[Player, str, str]] = []
        for player in players:
            cleaned = clean_name(player.name)
            if not cleaned:
                continue
            self._entries.append((player, cleaned, normalize_tag_misreads(cleaned)))

    def __len__(self) -> int:
        return len(self._entries)

    def match(self, text: Optional[str]) -> MatchResult:
        text = text or ""
        if len(text.strip()) < MIN_INPUT_LENGTH:
            return unknown(text)

        candidate = clean_name(text)
        if not candidate:
            return unknown(text)

        for player, cleaned, _ in self._entries:
            if cleaned == candidate:
                return MatchResult(text, player, 0, MATCH_EXACT)

        normalized = normalize_tag_misreads(candidate)
        for player, _, normalized_name in self._entries:
            if normalized_name == normalized:
                return MatchResult(text, player, 0, MATCH_NORMALIZED)

        if len(candidate) >= MIN_CONTAIN_LENGTH:
            for player, cleaned, _ in self._entries:
                if candidate in cleaned or cleaned in candidate:
                    return MatchResult(text, player, 0, MATCH_CONTAIN)

        best_player: Optional[Player] = None
        best_distance: Optional[int] = None
        for player, cleaned, _ in self._entries:
            distance = Levenshtein.distance(candidate, cleaned)
            if best_distance is None or distance < best_distance:
                best_player, best_distance = player, distance

        if best_player is not None and best_distance <= max_allowed_distance(len(candidate), self.fuzzy_ratio):
            return MatchResult(text, best_player, best_distance, MATCH_FUZZY)

        logger.debug(f"매칭 실패: {text!r} (최소 거리 {best_distance})")
        return unknown(text)


def match(text: Optional[str], roster: Sequence[Player], fuzzy_ratio: float = DEFAULT_FUZZY_RATIO) -> MatchResult:
    """일회성 매칭 (반복 호출 시에는 NameMatcher를 재사용)"""
    return NameMatcher(roster, fuzzy_ratio).match(text)
