"""
결과 화면 영역 텍스트 파싱

인식기가 돌려준 영역 텍스트에서 순위와 (이름, 킬) 목록을 뽑는다.

순위 결정 우선순위:
1. 단독 토큰 줄 ("3", "b" → 6, "a" → 4)
2. 줄 앞머리 숫자 토큰 ("5 CRX_Ace 3キル")
3. 영역 위치 (LT → 1, LB → 2)
4. 그 외에는 None (미확인)
"""
import re
from dataclasses import dataclass, field
from typing import List, Optional

from loguru import logger

from data_pipeline.normalizer import (
    KILL_PATTERN,
    KILL_SUFFIX_PATTERN,
    HALLUCINATION_PATTERNS,
    KNOWN_TEAM_TAGS,
    RANK_GLYPHS,
    LEADING_RANK_GLYPHS,
    apply_kill_glyphs,
    is_system_label,
    strip_hallucination_fragments,
)

# 영역 위치별 고정 순위 (좌측 열은 1위, 2위 카드)
POSITION_RANKS = {"LT": 1, "LB": 2}

MAX_LONE_KILLS = 30
RANK_HEADER_WINDOW = 3

_STANDALONE_RANK = re.compile(r"^[\s*]*([0-9ab]{1,2})[\s*]*$")
_LEADING_RANK = re.compile(r"^([0-9ab]{1,2})\s+", re.IGNORECASE)
_LONE_DIGIT = re.compile(r"^\d{1,2}$")

# 이름 정리
_LEADING_SHORT_TOKEN = re.compile(r"^[a-z]{1,2}\s+", re.IGNORECASE)
_LEADING_NUMBER = re.compile(r"^\d+\s+")
_LEADING_SYMBOLS = re.compile(r"^[*|!‡_@#%&§=~«\-\[\](){}.:とにて]+\s*")
_TRAILING_SYMBOLS = re.compile(r"\s*(?:DL|[*|!‡_@#%&§=~«\-\[\](){}.:])+$")
_NAME_START = re.compile(r"^[a-zA-Z0-9\u3040-\u30ff\u4e00-\u9faf]")

MIN_NAME_LENGTH = 2
MIN_SUSPICIOUS_NAME_LENGTH = 3


@dataclass
class ParsedEntry:
    name: str
    kills: Optional[int] = None
    line_index: int = 0


@dataclass
class RegionParse:
    label: str
    rank: Optional[int] = None
    entries: List[ParsedEntry] = field(default_factory=list)


def _rank_from_token(token: str, glyphs: dict) -> Optional[int]:
    if token in glyphs:
        return glyphs[token]
    digits = re.match(r"^\d+", token)
    if not digits:
        return None
    return int(digits.group(0)) or None


def detect_rank(lines: List[str], label: str) -> Optional[int]:
    """영역 순위 판정 (못 찾으면 None)"""
    for line in lines:
        match = _STANDALONE_RANK.match(line.lower())
        if match:
            rank = _rank_from_token(match.group(1), RANK_GLYPHS)
            if rank:
                return rank
            break

    for line in lines:
        match = _LEADING_RANK.match(line)
        if match:
            rank = _rank_from_token(match.group(1).lower(), LEADING_RANK_GLYPHS)
            if rank:
                return rank

    return POSITION_RANKS.get(label)


def clean_entry_name(name: str) -> str:
    """순위 접두사, 앞뒤 기호, 환각 조각 제거"""
    name = _LEADING_SHORT_TOKEN.sub("", name, count=1)
    name = _LEADING_NUMBER.sub("", name, count=1).strip()
    name = _LEADING_SYMBOLS.sub("", name, count=1).strip()
    name = _TRAILING_SYMBOLS.sub("", name, count=1).strip()
    name = strip_hallucination_fragments(name)

    if len(name) > 1 and not _NAME_START.match(name):
        name = name[1:].strip()
    return name


def is_hallucination(name: str) -> bool:
    """
    환각 판정

    알려진 팀 태그로 시작하면 짧아도 유지한다.
    """
    suspicious = any(h in name for h in HALLUCINATION_PATTERNS) or len(name) < MIN_NAME_LENGTH
    if not suspicious:
        return False
    if any(name.startswith(tag) for tag in KNOWN_TEAM_TAGS):
        return False
    return name in HALLUCINATION_PATTERNS or len(name) < MIN_SUSPICIOUS_NAME_LENGTH


def split_kills(line: str):
    """
    줄 → (이름 부분, 킬 수)

    킬 표기가 여러 번 잡히면 마지막 것을 쓴다 (이름 안의 숫자 보호).
    """
    mapped = apply_kill_glyphs(line)
    matches = list(KILL_PATTERN.finditer(mapped))
    if matches:
        last = matches[-1]
        name = mapped[:last.start()] + mapped[last.end():]
        return name.strip(), int(last.group(1))

    suffix = KILL_SUFFIX_PATTERN.search(line)
    if suffix:
        return line[:suffix.start()].strip(), None
    return line, None


def parse_region_text(text: str, label: str) -> RegionParse:
    """영역 텍스트 → 순위 + 항목 목록 (줄 순서 유지)"""
    lines = [line.strip() for line in (text or "").split("\n") if line.strip()]
    rank = detect_rank(lines, label)
    result = RegionParse(label=label, rank=rank)

    for index, line in enumerate(lines):
        if is_system_label(line):
            continue

        # 따로 떨어진 숫자 줄: 순위 헤더 또는 직전 항목의 킬 수
        if _LONE_DIGIT.match(line):
            number = int(line)
            if number == rank and index < RANK_HEADER_WINDOW:
                continue
            if number <= MAX_LONE_KILLS and result.entries and result.entries[-1].kills is None:
                result.entries[-1].kills = number
            continue

        name, kills = split_kills(line)
        name = clean_entry_name(name)

        if not name or is_hallucination(name):
            continue

        result.entries.append(ParsedEntry(name=name, kills=kills, line_index=index))

    logger.debug(f"[{label}] 순위={rank} 항목={len(result.entries)}")
    return result
