"""
OCR 결과 수집 파이프라인

스크린샷 → 영역 분할 → 인식 → 파싱 → 선수 매칭 → 순위별 정리 → 운영자 검토

- 이미지 단위 병렬 처리 (asyncio.Semaphore + to_thread)
- 한 이미지의 영역들은 순서대로 처리
- 결과 정렬은 (이미지 번호, 영역 순서, 줄 순서) 기준. 완료 순서와 무관
"""
import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from loguru import logger
from PIL import Image

from data_pipeline.aggregator import AggregationResult, RankAdjustment, ResultEntry, aggregate
from data_pipeline.normalizer import fold_text_key, parse_optional_int
from data_pipeline.schemas import Player, RoundResult, ScoringRules, Team

from .config import OcrConfig, ocr_config
from .exceptions import RecognitionError, UnknownItemError
from .matcher import DEFAULT_FUZZY_RATIO, MatchResult, NameMatcher
from .parser import RegionParse, parse_region_text
from .recognizer import TextRecognizer
from .segmenter import RESULT_CARD_REGIONS, Region, render_region

MATCH_MANUAL = "manual"
GUEST_PREFIX = "guest_"

ImageSource = Union[Image.Image, str, Path]


# ==================== 로스터 ====================

class Roster:
    """
    매칭용 로스터

    대회 팀에 소속된 선수만 매칭 대상. 선수가 여러 팀에 있으면 첫 팀을 쓴다.
    """

    def __init__(self, players: Sequence[Player], teams: Sequence[Team], fuzzy_ratio: float = DEFAULT_FUZZY_RATIO):
        self.teams = list(teams)
        self._teams_by_id = {t.id: t for t in self.teams}
        self._players_by_id = {p.id: p for p in players}

        self._team_of: Dict[str, Team] = {}
        for team in self.teams:
            for member_id in team.member_ids:
                self._team_of.setdefault(member_id, team)

        self.players = [p for p in players if p.id in self._team_of]
        self.matcher = NameMatcher(self.players, fuzzy_ratio)

    @classmethod
    def from_records(
        cls,
        player_rows: Iterable[Dict[str, Any]],
        team_rows: Iterable[Dict[str, Any]],
        fuzzy_ratio: float = DEFAULT_FUZZY_RATIO,
    ) -> "Roster":
        """Supabase 행 → 로스터"""
        players = [Player.model_validate(row) for row in player_rows]
        teams = [Team.model_validate(row) for row in team_rows]
        return cls(players, teams, fuzzy_ratio)

    def get_player(self, player_id: str) -> Optional[Player]:
        return self._players_by_id.get(player_id)

    def get_team(self, team_id: str) -> Optional[Team]:
        return self._teams_by_id.get(team_id)

    def team_for(self, player_id: str) -> Optional[Team]:
        return self._team_of.get(player_id)

    def match(self, text: str) -> MatchResult:
        return self.matcher.match(text)


# ==================== 검토 항목 ====================

@dataclass
class DetectionItem:
    """검토 대상 항목 (인식된 줄 1개 또는 수동 추가)"""
    id: str
    raw_text: str
    edited_text: str
    match: MatchResult
    kills: Optional[int] = None
    rank: Optional[int] = None
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    is_duplicate: bool = False
    is_manual: bool = False
    is_guest: bool = False
    source_image_index: Optional[int] = None
    source_region_label: Optional[str] = None

    @property
    def player_id(self) -> Optional[str]:
        return self.match.player.id if self.match.player else None

    @property
    def member_key(self) -> Optional[str]:
        """memberKills 키 (선수 ID, 팀만 지정된 게스트는 guest_<항목 ID>)"""
        if self.player_id:
            return self.player_id
        if self.team_id:
            return f"{GUEST_PREFIX}{self.id}"
        return None

    @property
    def is_unresolved(self) -> bool:
        return self.is_duplicate or self.rank is None or not self.team_id


@dataclass
class RegionReading:
    """영역 하나의 인식 결과"""
    image_index: int
    region_index: int
    label: str
    raw_text: str
    parsed: RegionParse
    items: List[DetectionItem] = field(default_factory=list)


def _apply_match(item: DetectionItem, match: MatchResult, roster: Roster):
    item.match = match
    item.is_guest = False
    team = roster.team_for(match.player.id) if match.player else None
    item.team_id = team.id if team else None
    item.team_name = team.name if team else None


def build_items(reading: RegionReading, roster: Roster) -> List[DetectionItem]:
    """파싱 결과 → 검토 항목 (ID는 이미지/영역/줄 위치로 결정)"""
    items = []
    for entry in reading.parsed.entries:
        item = DetectionItem(
            id=f"ocr_{reading.image_index}_{reading.label}_{entry.line_index}",
            raw_text=entry.name,
            edited_text=entry.name,
            match=roster.match(entry.name),
            kills=entry.kills,
            rank=reading.parsed.rank,
            source_image_index=reading.image_index,
            source_region_label=reading.label,
        )
        _apply_match(item, item.match, roster)
        items.append(item)
    return items


def _same_entry(a: DetectionItem, b: DetectionItem) -> bool:
    if a.player_id and b.player_id and a.player_id == b.player_id:
        return True
    return fold_text_key(a.edited_text) == fold_text_key(b.edited_text)


def mark_duplicates(items: List[DetectionItem]) -> None:
    """목록 순서대로 처음 나온 선수가 선점. 이후 같은 선수는 중복 표시"""
    claimed = set()
    for item in items:
        item.is_duplicate = False
        if item.player_id is None:
            continue
        if item.player_id in claimed:
            item.is_duplicate = True
        else:
            claimed.add(item.player_id)


def collate_detections(readings: Iterable[RegionReading], group_cap: int = 4) -> List[DetectionItem]:
    """
    영역 결과 → 순위별 정리된 항목 목록

    - 같은 순위 그룹 안에서 같은 선수/같은 텍스트는 하나만, 그룹당 group_cap명까지
    - 순위 오름차순으로 나열하고, 순위를 모르는 항목은 맨 뒤에 붙인다
    - 다른 순위 그룹에 같은 선수가 또 나오면 뒤쪽을 중복으로 표시
    """
    ordered = sorted(readings, key=lambda r: (r.image_index, r.region_index))

    groups: Dict[int, List[DetectionItem]] = {}
    unassigned: List[DetectionItem] = []

    for reading in ordered:
        for item in reading.items:
            if item.rank is None:
                unassigned.append(item)
                continue
            group = groups.setdefault(item.rank, [])
            if any(_same_entry(existing, item) for existing in group):
                continue
            if len(group) >= group_cap:
                logger.debug(f"순위 {item.rank} 그룹 가득 참, 제외: {item.edited_text}")
                continue
            group.append(item)

    result = [item for rank in sorted(groups) for item in groups[rank]]
    result.extend(unassigned)
    mark_duplicates(result)
    return result


def _load_image(source: ImageSource) -> Image.Image:
    if isinstance(source, Image.Image):
        return source
    with Image.open(source) as image:
        image.load()
        return image.copy()


# ==================== 세션 ====================

class OcrSession:
    """
    한 라운드 분량의 스크린샷 처리 + 운영자 검토 상태

    Example:
        session = OcrSession(roster, TesseractRecognizer())
        await session.process_images(["r1_a.png", "r1_b.png"])
        session.set_kills(item_id, 3)
        result = session.aggregate(existing, rules)
    """

    def __init__(
        self,
        roster: Roster,
        recognizer: TextRecognizer,
        config: Optional[OcrConfig] = None,
        regions: Sequence[Region] = RESULT_CARD_REGIONS,
    ):
        self.roster = roster
        self.recognizer = recognizer
        self.config = config or ocr_config
        self.regions = tuple(regions)

        self.items: List[DetectionItem] = []
        self.readings: List[RegionReading] = []
        self.team_points: Dict[int, RankAdjustment] = {}
        self._manual_seq = 0

    # ===== 인식 =====

    def read_image(self, source: ImageSource, image_index: int) -> List[RegionReading]:
        """이미지 1장 처리 (blocking, 영역은 순서대로)"""
        image = _load_image(source)
        readings = []

        for region_index, region in enumerate(self.regions):
            rendered = render_region(image, region, self.config.upscale, self.config.threshold)
            try:
                text = self.recognizer.recognize(rendered)
            except RecognitionError as e:
                logger.error(f"❌ 인식 실패 (이미지 {image_index + 1}, {region.label}): {e}")
                text = ""

            reading = RegionReading(
                image_index=image_index,
                region_index=region_index,
                label=region.label,
                raw_text=text,
                parsed=parse_region_text(text, region.label),
            )
            reading.items = build_items(reading, self.roster)
            readings.append(reading)

        logger.debug(f"이미지 {image_index + 1} 처리 완료: {sum(len(r.items) for r in readings)}개 항목")
        return readings

    async def process_images(self, sources: Sequence[ImageSource]) -> List[DetectionItem]:
        """
        스크린샷 일괄 처리

        이전 검토 상태는 초기화된다. 엔진 자체를 쓸 수 없으면
        OcrEngineUnavailableError가 그대로 올라간다.
        """
        semaphore = asyncio.Semaphore(max(1, self.config.max_concurrent_images))

        async def run(index: int, source: ImageSource) -> List[RegionReading]:
            async with semaphore:
                return await asyncio.to_thread(self.read_image, source, index)

        logger.info(f"🔍 스크린샷 {len(sources)}장 처리 시작")
        batches = await asyncio.gather(*(run(i, s) for i, s in enumerate(sources)))

        self.readings = sorted(
            (reading for batch in batches for reading in batch),
            key=lambda r: (r.image_index, r.region_index),
        )
        self.items = collate_detections(self.readings, self.config.group_cap)
        self.team_points = {}

        logger.info(
            f"✅ 처리 완료: {len(self.items)}개 항목 "
            f"(미해결 {len(self.unresolved())}, 중복 {sum(1 for i in self.items if i.is_duplicate)})"
        )
        return self.items

    @property
    def raw_text_log(self) -> str:
        """영역별 원문 (디버깅용)"""
        return "".join(
            f"--- Image {r.image_index + 1} Pos {r.label} ---\n{r.raw_text}\n\n"
            for r in self.readings
        )

    # ===== 운영자 검토 =====

    def get_item(self, item_id: str) -> DetectionItem:
        for item in self.items:
            if item.id == item_id:
                return item
        raise UnknownItemError(item_id)

    def edit_text(self, item_id: str, text: str) -> DetectionItem:
        item = self.get_item(item_id)
        item.edited_text = text
        return item

    def rematch(self, item_id: str) -> DetectionItem:
        """수정된 텍스트로 다시 매칭"""
        item = self.get_item(item_id)
        item.raw_text = item.edited_text
        _apply_match(item, self.roster.match(item.edited_text), self.roster)
        mark_duplicates(self.items)
        return item

    def assign_player(self, item_id: str, player_id: str) -> DetectionItem:
        item = self.get_item(item_id)
        player = self.roster.get_player(player_id)
        if player is None:
            raise ValueError(f"로스터에 없는 선수: {player_id}")
        _apply_match(item, MatchResult(item.edited_text, player, 0, MATCH_MANUAL), self.roster)
        mark_duplicates(self.items)
        return item

    def assign_team(self, item_id: str, team_id: str) -> DetectionItem:
        """팀만 지정 (선수가 미확인이면 게스트로 집계)"""
        item = self.get_item(item_id)
        team = self.roster.get_team(team_id)
        if team is None:
            raise ValueError(f"대회에 없는 팀: {team_id}")
        item.team_id = team.id
        item.team_name = team.name
        item.is_guest = item.match.is_unknown
        return item

    def set_kills(self, item_id: str, value: Any) -> DetectionItem:
        item = self.get_item(item_id)
        item.kills = parse_optional_int(value)
        return item

    def set_rank(self, item_id: str, value: Any) -> DetectionItem:
        item = self.get_item(item_id)
        rank = parse_optional_int(value)
        item.rank = rank if rank and rank > 0 else None
        return item

    def add_entry(self, rank: Any = None) -> DetectionItem:
        """빈 항목 추가 (목록 끝)"""
        self._manual_seq += 1
        rank_value = parse_optional_int(rank)
        item = DetectionItem(
            id=f"manual_{self._manual_seq}",
            raw_text="",
            edited_text="",
            match=MatchResult(original_text=""),
            rank=rank_value if rank_value and rank_value > 0 else None,
            is_manual=True,
        )
        self.items.append(item)
        return item

    def remove_entry(self, item_id: str) -> None:
        item = self.get_item(item_id)
        self.items.remove(item)
        mark_duplicates(self.items)

    def set_team_points(self, rank: int, bonus: Any = None, penalty: Any = None) -> RankAdjustment:
        """순위별 보너스/페널티 (None이면 기존 값 유지, 빈 값은 0)"""
        current = self.team_points.get(rank, RankAdjustment())
        adjustment = RankAdjustment(
            bonus=current.bonus if bonus is None else (parse_optional_int(bonus) or 0),
            penalty=current.penalty if penalty is None else (parse_optional_int(penalty) or 0),
        )
        self.team_points[rank] = adjustment
        return adjustment

    # ===== 조회 / 집계 =====

    def by_rank(self) -> Dict[Optional[int], List[DetectionItem]]:
        groups: Dict[Optional[int], List[DetectionItem]] = {}
        for item in self.items:
            groups.setdefault(item.rank, []).append(item)
        return groups

    def unresolved(self) -> List[DetectionItem]:
        """순위 미확인 / 팀 없음 / 중복 항목"""
        return [item for item in self.items if item.is_unresolved]

    def to_entries(self) -> List[ResultEntry]:
        return [
            ResultEntry(
                member_key=item.member_key,
                team_id=item.team_id,
                rank=item.rank,
                kills=item.kills,
                is_duplicate=item.is_duplicate,
                item_id=item.id,
            )
            for item in self.items
        ]

    def aggregate(self, existing: Dict[str, RoundResult], rules: ScoringRules) -> AggregationResult:
        return aggregate(existing, self.to_entries(), rules, self.team_points)
