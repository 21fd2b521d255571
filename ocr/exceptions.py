"""
OCR 예외
"""


class OcrError(Exception):
    """OCR 파이프라인 기본 예외"""


class OcrEngineUnavailableError(OcrError):
    """인식 엔진(tesseract)을 사용할 수 없음. 배치 전체를 중단한다."""


class RecognitionError(OcrError):
    """영역 하나의 인식 실패. 해당 영역만 건너뛴다."""


class UnknownItemError(OcrError, KeyError):
    """존재하지 않는 검토 항목 ID"""
