"""
결과 화면 영역 분할

경기 결과 화면(2열 카드 배치)을 고정 비율 영역 5개로 나누고,
인식 전에 확대 + 이진화한다.
"""
from dataclasses import dataclass
from typing import List, Tuple

from PIL import Image

DEFAULT_UPSCALE = 2
DEFAULT_THRESHOLD = 140


@dataclass(frozen=True)
class Region:
    """비율 좌표 영역 (이미지 크기 대비 0~1)"""
    label: str
    x: float
    y: float
    w: float
    h: float

    def box(self, width: int, height: int) -> Tuple[int, int, int, int]:
        """픽셀 좌표 (left, top, right, bottom)"""
        left = int(round(width * self.x))
        top = int(round(height * self.y))
        right = min(width, int(round(width * (self.x + self.w))))
        bottom = min(height, int(round(height * (self.y + self.h))))
        return left, top, right, bottom


# 좌측 열: 1위, 2위 카드 / 우측 열: 나머지 카드 3장
RESULT_CARD_REGIONS: Tuple[Region, ...] = (
    Region("LT", 0.04, 0.15, 0.46, 0.38),
    Region("LB", 0.04, 0.53, 0.46, 0.39),
    Region("RT", 0.50, 0.18, 0.46, 0.23),
    Region("RM", 0.50, 0.41, 0.46, 0.24),
    Region("RB", 0.50, 0.65, 0.46, 0.30),
)


def segment(image: Image.Image, regions: Tuple[Region, ...] = RESULT_CARD_REGIONS) -> List[Tuple[Region, Image.Image]]:
    """이미지 → (영역, 잘라낸 이미지) 목록 (영역 순서 유지)"""
    width, height = image.size
    return [(region, image.crop(region.box(width, height))) for region in regions]


def binarize(image: Image.Image, threshold: int = DEFAULT_THRESHOLD) -> Image.Image:
    """
    채널 평균이 threshold보다 밝으면 검정(0), 아니면 흰색(255)

    어두운 배경의 밝은 글자를 흰 배경의 검은 글자로 뒤집는다.
    """
    rgb = image.convert("RGB")
    limit = threshold * 3
    out = Image.new("L", rgb.size)
    out.putdata([0 if (r + g + b) > limit else 255 for r, g, b in rgb.getdata()])
    return out


def render_region(
    image: Image.Image,
    region: Region,
    upscale: int = DEFAULT_UPSCALE,
    threshold: int = DEFAULT_THRESHOLD,
) -> Image.Image:
    """영역 잘라내기 → 확대 → 이진화"""
    width, height = image.size
    crop = image.crop(region.box(width, height))
    if upscale != 1:
        crop = crop.resize((crop.width * upscale, crop.height * upscale), Image.BILINEAR)
    return binarize(crop, threshold)
