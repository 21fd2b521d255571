"""
OCR 텍스트 정규화 모듈
- 선수명 정리 (소문자, 노이즈 기호, 공백, 오인식 보정, 작은 가나 접기)
- 팀 태그 오인식 보정
- 킬 수 표기 패턴
- 운영자 입력 숫자 파싱 (빈 값과 0 구분)

모든 치환 규칙은 아래 테이블에만 둔다. 새 오인식 패턴은 테이블에 행을 추가하고
NORMALIZATION_TABLE_VERSION을 올린다. 제어 흐름은 건드리지 않는다.
"""
import re
from typing import Any, Iterable, List, Optional, Pattern, Tuple


# =============================================================================
# 정규화 매핑 테이블 (Single Source of Truth)
# =============================================================================

NORMALIZATION_TABLE_VERSION = "2025.02"

# (pattern, replacement) 순서대로 적용
SubstitutionTable = List[Tuple[str, str]]

# 이름 비교 시 제거하는 OCR 노이즈 기호
NAME_NOISE_PATTERN = r"[*|!‡_@#%&§=\-\[\](){}+.~«]"

# 자주 나오는 OCR 오인식 (중복 문자, 혼동 글리프)
OCR_MISREAD_TABLE: SubstitutionTable = [
    (r"ooharamen", "oharamen"),
    (r"^raf[こ]", "raf"),
    (r"^lnd[遂]", "lnd"),
]

# 작은 가나 → 기본형 (촉음)
KANA_FOLD_TABLE: SubstitutionTable = [
    (r"[ッっ]", "つ"),
]

# 팀 태그 오인식 (이 게임 결과 화면에서 관측된 것들)
TAG_MISREAD_TABLE: SubstitutionTable = [
    (r"^drx", "crx"),
    (r"^cry", "crx"),
    (r"^erx", "crx"),
    (r"^gz4", "bz4"),
    (r"bib", "big"),
    (r"8ig", "big"),
    (r"ilsmn", "jisos"),
    (r"nqe", "nqg"),
    (r"phv", "crx"),
    (r"dante", "route"),
    (r"[\-.]", ""),
]

# 순위 헤더로 단독 인식된 글자 → 순위
RANK_GLYPHS = {"a": 4, "b": 6}

# 줄 앞머리 순위 토큰용 ('a' 제외)
LEADING_RANK_GLYPHS = {"b": 6}

# 킬 수 판독 전에 줄 전체에 적용하는 글리프 보정
KILL_GLYPH_TABLE: SubstitutionTable = [
    (r"Bx", "キル"),
    (r"ロ", "5"),
    (r"ワ", "2"),
    (r"IL", "3"),
    (r"B", "8"),
]

# 킬 수 뒤에 붙는 표기 (현지화 단위, 구두점 잔재, 괄호 등). 순서가 우선순위
KILL_MARKERS: Tuple[str, ...] = (
    r"キル",
    r"キ[ ]*ル",
    r"ロキ[ ]*ル",
    r"ワキ[ ]*ル",
    r"ル",
    r"k",
    r"\|",
    r":",
    r"!",
    r"\*",
    r"DL",
    r"IL",
    r"\[\s*キル",
    r"[$」]",
    r"Bx",
    r"[.,_s]",
)

# 표기 뒤에 영숫자가 이어지면 이름의 일부 (예: BZ4_Ejisos)
KILL_PATTERN: Pattern = re.compile(r"(\d+)\s*(" + "|".join(KILL_MARKERS) + r")(?![A-Za-z0-9])", re.IGNORECASE)
KILL_SUFFIX_PATTERN: Pattern = re.compile(r"(" + "|".join(KILL_MARKERS) + r")$", re.IGNORECASE)

# 결과 화면 UI 라벨 (이 문자열을 포함한 줄은 버림)
SYSTEM_LABELS: Tuple[str, ...] = ("PUBG", "MOBILE", "RESULT", "NAME", "TIME", "OK", "RANK")

# 이름 내용이 없는 인식기 환각 문자열
HALLUCINATION_PATTERNS: Tuple[str, ...] = (
    "on", "hx", "DL", "cé", "み", "cw", "シン ノン", "AZ", "PRY",
    "後藤 マン", "シン ", "X17", "ミイ ", "オデ", "シ シン",
    "NF", "hisrcs", "OK",
)

# 이름 중간에 섞여 나오는 환각 조각 (제거)
HALLUCINATION_FRAGMENTS: SubstitutionTable = [
    (r"シン[ ]*ノン", ""),
    (r"因[ ]*全[ ]*生", ""),
    (r"吉[ ]*本[ ]*本", ""),
]

# 실제 팀 태그 접두사 (짧아도 환각으로 버리지 않음)
KNOWN_TEAM_TAGS: Tuple[str, ...] = (
    "Dzl", "BZ4", "GUM", "CRX", "NS", "GZ4", "DRX", "ERX", "CRY", "RAF", "LND", "FN", "BIG",
)


# =============================================================================
# 정규화 함수들
# =============================================================================

def apply_table(text: str, table: Iterable[Tuple[str, str]]) -> str:
    """치환 테이블을 순서대로 적용"""
    for pattern, replacement in table:
        text = re.sub(pattern, replacement, text)
    return text


def strip_name_noise(text: str) -> str:
    """소문자화 + 노이즈 기호/공백 제거"""
    if not text:
        return ""
    cleaned = re.sub(NAME_NOISE_PATTERN, "", text.lower())
    return re.sub(r"\s+", "", cleaned).strip()


def clean_name(text: Optional[str]) -> str:
    """
    매칭용 이름 정리

    소문자 → 노이즈 기호 제거 → 공백 제거 → OCR 오인식 보정 → 작은 가나 접기
    """
    cleaned = strip_name_noise(text or "")
    cleaned = apply_table(cleaned, OCR_MISREAD_TABLE)
    return apply_table(cleaned, KANA_FOLD_TABLE)


def normalize_tag_misreads(cleaned: str) -> str:
    """정리된 이름에 팀 태그 오인식 테이블 적용"""
    return apply_table(cleaned, TAG_MISREAD_TABLE)


def apply_kill_glyphs(line: str) -> str:
    """킬 수 판독용 글리프 보정"""
    return apply_table(line, KILL_GLYPH_TABLE)


def strip_hallucination_fragments(name: str) -> str:
    return apply_table(name, HALLUCINATION_FRAGMENTS).strip()


def is_system_label(line: str) -> bool:
    upper = line.upper()
    return any(label in upper for label in SYSTEM_LABELS)


def fold_text_key(text: Optional[str]) -> str:
    """중복 판단용 키 (대소문자/공백 무시)"""
    return re.sub(r"\s", "", (text or "").lower())


# =============================================================================
# 운영자 입력 숫자
# =============================================================================

def parse_optional_int(value: Any) -> Optional[int]:
    """
    운영자 입력 숫자 파싱

    빈 값("", None)이나 숫자가 아닌 값은 None (미입력).
    0은 0으로 유지한다.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    text = str(value).strip()
    if not text:
        return None
    match = re.match(r"^[+-]?\d+", text)
    if not match:
        return None
    return int(match.group(0))


def to_int(value: Any, default: int = 0) -> int:
    """계산용 숫자. 미입력/잘못된 값은 default"""
    parsed = parse_optional_int(value)
    return default if parsed is None else parsed
