"""
텍스트 인식기

파이프라인은 recognize(image) → str 만 요구한다. 기본 구현은 tesseract.
"""
from typing import Optional, Protocol

import pytesseract
from loguru import logger
from PIL import Image
from pytesseract import TesseractError, TesseractNotFoundError

from .config import OcrConfig, ocr_config
from .exceptions import OcrEngineUnavailableError, RecognitionError


class TextRecognizer(Protocol):
    def recognize(self, image: Image.Image) -> str:
        """이미지 → 줄바꿈 구분 텍스트"""
        ...


class TesseractRecognizer:
    """pytesseract 기반 인식기 (blocking)"""

    def __init__(self, config: Optional[OcrConfig] = None):
        self.config = config or ocr_config
        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd

    def recognize(self, image: Image.Image) -> str:
        try:
            return pytesseract.image_to_string(
                image,
                lang=self.config.tesseract_lang,
                config=self.config.tesseract_config,
            ) or ""
        except TesseractNotFoundError as e:
            raise OcrEngineUnavailableError("tesseract가 설치되어 있지 않거나 PATH에 없습니다") from e
        except TesseractError as e:
            raise RecognitionError(f"tesseract 인식 실패: {e}") from e

    def check_available(self) -> bool:
        """엔진/언어 데이터 확인"""
        try:
            version = pytesseract.get_tesseract_version()
            languages = pytesseract.get_languages(config="")
        except TesseractNotFoundError:
            logger.error("❌ tesseract를 찾을 수 없습니다")
            return False

        missing = [lang for lang in self.config.tesseract_lang.split("+") if lang not in languages]
        if missing:
            logger.warning(f"⚠️ tesseract 언어 데이터 없음: {missing}")
            return False

        logger.info(f"tesseract {version} ({self.config.tesseract_lang})")
        return True
