"""
경기 결과 스크린샷 OCR

영역 분할 → 인식 → 파싱 → 선수 매칭 → 운영자 검토 → 집계
"""
from .config import OcrConfig, ocr_config
from .exceptions import OcrError, OcrEngineUnavailableError, RecognitionError, UnknownItemError
from .matcher import MatchResult, NameMatcher, match, max_allowed_distance
from .parser import ParsedEntry, RegionParse, parse_region_text, detect_rank
from .segmenter import Region, RESULT_CARD_REGIONS, segment, render_region, binarize
from .recognizer import TextRecognizer, TesseractRecognizer
from .pipeline import (
    Roster,
    DetectionItem,
    RegionReading,
    OcrSession,
    collate_detections,
    mark_duplicates,
)

__all__ = [
    "OcrConfig",
    "ocr_config",
    "OcrError",
    "OcrEngineUnavailableError",
    "RecognitionError",
    "UnknownItemError",
    "MatchResult",
    "NameMatcher",
    "match",
    "max_allowed_distance",
    "ParsedEntry",
    "RegionParse",
    "parse_region_text",
    "detect_rank",
    "Region",
    "RESULT_CARD_REGIONS",
    "segment",
    "render_region",
    "binarize",
    "TextRecognizer",
    "TesseractRecognizer",
    "Roster",
    "DetectionItem",
    "RegionReading",
    "OcrSession",
    "collate_detections",
    "mark_duplicates",
]
