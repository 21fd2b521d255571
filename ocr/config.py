"""
OCR 설정
"""
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


class OcrConfig(BaseSettings):
    """OCR 설정 (환경변수 OCR_*)"""

    # Tesseract
    tesseract_lang: str = Field(default="jpn+eng", description="인식 언어")
    tesseract_cmd: Optional[str] = Field(default=None, description="tesseract 실행 파일 경로")
    tesseract_config: str = Field(default="--psm 6", description="추가 tesseract 옵션")

    # 전처리
    upscale: int = Field(default=2, description="영역 확대 배율")
    threshold: int = Field(default=140, description="이진화 기준 (평균 밝기가 이보다 크면 검정)")

    # 병렬 처리
    max_concurrent_images: int = Field(default=2, description="동시에 처리할 이미지 수")

    # 매칭
    fuzzy_ratio: float = Field(default=0.45, description="허용 편집 거리 비율 (후보 길이 기준)")
    group_cap: int = Field(default=4, description="순위 그룹당 최대 인원 (팀 인원)")

    class Config:
        env_prefix = "OCR_"
        case_sensitive = False


ocr_config = OcrConfig()
