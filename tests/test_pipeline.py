"""
OCR 수집 파이프라인 테스트
- 병렬 처리 결과 순서
- 순위 그룹 / 중복 표시
- 운영자 검토 조작
"""
import random

import pytest
from PIL import Image

from data_pipeline.schemas import RoundResult
from ocr.config import OcrConfig
from ocr.exceptions import OcrEngineUnavailableError, RecognitionError, UnknownItemError
from ocr.parser import parse_region_text
from ocr.pipeline import (
    OcrSession,
    RegionReading,
    Roster,
    build_items,
    collate_detections,
    mark_duplicates,
)
from ocr.segmenter import RESULT_CARD_REGIONS


class SizeKeyedRecognizer:
    """렌더링된 영역 크기로 텍스트를 돌려주는 가짜 인식기 (스레드 무관)"""

    def __init__(self, texts, failures=None, unavailable=False):
        self.texts = texts
        self.failures = failures or set()
        self.unavailable = unavailable

    def recognize(self, image):
        if self.unavailable:
            raise OcrEngineUnavailableError("no tesseract")
        if image.size in self.failures:
            raise RecognitionError("broken region")
        return self.texts.get(image.size, "")


def rendered_size(image_size, label, upscale=2):
    region = next(r for r in RESULT_CARD_REGIONS if r.label == label)
    left, top, right, bottom = region.box(*image_size)
    return (right - left) * upscale, (bottom - top) * upscale


@pytest.fixture
def roster(players, teams):
    return Roster(players, teams)


@pytest.fixture
def config():
    return OcrConfig(max_concurrent_images=2, group_cap=4)


def make_reading(roster, image_index, region_index, label, text):
    reading = RegionReading(
        image_index=image_index,
        region_index=region_index,
        label=label,
        raw_text=text,
        parsed=parse_region_text(text, label),
    )
    reading.items = build_items(reading, roster)
    return reading


SMALL = (100, 100)
LARGE = (200, 200)

SCREEN_TEXTS = {
    (SMALL, "LT"): "CRX_Ace 3キル\nCRX_Dash 2キル",
    (SMALL, "LB"): "RAF_Hawk 1キル\nRAF_Owl 4キル",
    (SMALL, "RT"): "3\nZZQQXX 1キル",
    (LARGE, "LT"): "CRX_Ace 3キル",
    (LARGE, "RT"): "3\nRAF_Hawk 2キル",
    (LARGE, "RB"): "Sakura 2キル",
}


def screen_recognizer(**kwargs):
    texts = {rendered_size(size, label): text for (size, label), text in SCREEN_TEXTS.items()}
    return SizeKeyedRecognizer(texts, **kwargs)


# =============================================================================
# 로스터
# =============================================================================

class TestRoster:
    """매칭용 로스터"""

    def test_only_team_members_matchable(self, roster):
        assert {p.id for p in roster.players} == {"p1", "p2", "p3", "p4", "p5", "p6", "p7"}
        assert roster.match("Orphan").is_unknown

    def test_first_team_wins(self, players, teams):
        teams[1].member_ids.append("p1")
        roster = Roster(players, teams)
        assert roster.team_for("p1").id == "t1"

    def test_from_records(self):
        roster = Roster.from_records(
            [{"id": 1, "name": "CRX_Ace", "tags": None}, {"id": "u2", "username": "Sakura"}],
            [{"id": "t1", "name": "Crux", "member_ids": [1, "u2"]}],
        )
        assert roster.team_for("1").id == "t1"
        assert roster.match("Sakura").player.id == "u2"


# =============================================================================
# 이미지 처리
# =============================================================================

class TestProcessImages:
    """스크린샷 일괄 처리"""

    @pytest.mark.asyncio
    async def test_collated_order(self, roster, config):
        session = OcrSession(roster, screen_recognizer(), config)
        images = [Image.new("RGB", SMALL), Image.new("RGB", LARGE)]

        items = await session.process_images(images)

        assert [(i.edited_text, i.rank) for i in items] == [
            ("CRX_Ace", 1),
            ("CRX_Dash", 1),
            ("RAF_Hawk", 2),
            ("RAF_Owl", 2),
            ("ZZQQXX", 3),
            ("RAF_Hawk", 3),
            ("Sakura", None),
        ]
        assert [i.kills for i in items] == [3, 2, 1, 4, 1, 2, 2]
        assert [i.is_duplicate for i in items] == [False, False, False, False, False, True, False]

    @pytest.mark.asyncio
    async def test_match_and_team(self, roster, config):
        session = OcrSession(roster, screen_recognizer(), config)
        items = await session.process_images([Image.new("RGB", SMALL), Image.new("RGB", LARGE)])

        ace = items[0]
        assert ace.player_id == "p1"
        assert ace.team_id == "t1"
        assert ace.team_name == "Crux"
        assert ace.source_image_index == 0
        assert ace.source_region_label == "LT"

        unknown = items[4]
        assert unknown.match.is_unknown
        assert unknown.team_id is None

    @pytest.mark.asyncio
    async def test_raw_text_log(self, roster, config):
        session = OcrSession(roster, screen_recognizer(), config)
        await session.process_images([Image.new("RGB", SMALL), Image.new("RGB", LARGE)])

        log = session.raw_text_log
        assert "--- Image 1 Pos LT ---\nCRX_Ace 3キル" in log
        assert "--- Image 2 Pos RB ---\nSakura 2キル" in log
        assert log.index("Image 1 Pos RB") < log.index("Image 2 Pos LT")

    @pytest.mark.asyncio
    async def test_region_failure_skipped(self, roster, config):
        """영역 하나의 인식 실패는 배치를 중단하지 않음"""
        recognizer = screen_recognizer(failures={rendered_size(SMALL, "LT")})
        session = OcrSession(roster, recognizer, config)

        items = await session.process_images([Image.new("RGB", SMALL)])

        assert [i.edited_text for i in items] == ["RAF_Hawk", "RAF_Owl", "ZZQQXX"]

    @pytest.mark.asyncio
    async def test_engine_unavailable_propagates(self, roster, config):
        session = OcrSession(roster, screen_recognizer(unavailable=True), config)
        with pytest.raises(OcrEngineUnavailableError):
            await session.process_images([Image.new("RGB", SMALL)])

    @pytest.mark.asyncio
    async def test_image_paths(self, roster, config, tmp_path):
        path = tmp_path / "shot.png"
        Image.new("RGB", SMALL).save(path)
        session = OcrSession(roster, screen_recognizer(), config)

        items = await session.process_images([str(path)])

        assert items[0].edited_text == "CRX_Ace"


# =============================================================================
# 순위별 정리
# =============================================================================

class TestCollate:
    """순위 그룹 / 중복"""

    def test_order_independent_of_completion(self, roster):
        readings = [
            make_reading(roster, 0, 0, "LT", "CRX_Ace 3キル"),
            make_reading(roster, 0, 2, "RT", "3\nRAF_Hawk 1キル"),
            make_reading(roster, 1, 1, "LB", "RAF_Hawk 2キル\nSakura 1キル"),
            make_reading(roster, 1, 4, "RB", "CRX_Dash 1キル"),
        ]
        expected = [(i.id, i.is_duplicate) for i in collate_detections(readings)]

        for seed in range(5):
            shuffled = [make_reading(roster, r.image_index, r.region_index, r.label, r.raw_text) for r in readings]
            random.Random(seed).shuffle(shuffled)
            assert [(i.id, i.is_duplicate) for i in collate_detections(shuffled)] == expected

    def test_duplicate_flag_across_groups(self, roster):
        readings = [
            make_reading(roster, 0, 0, "LT", "RAF_Hawk 3キル"),
            make_reading(roster, 0, 1, "LB", "RAF_Hawk 1キル"),
        ]
        items = collate_detections(readings)
        assert [(i.rank, i.is_duplicate) for i in items] == [(1, False), (2, True)]

    def test_in_group_dedup(self, roster):
        readings = [
            make_reading(roster, 0, 0, "LT", "CRX_Ace 3キル"),
            make_reading(roster, 1, 0, "LT", "crx ace 3キル\nZZQQXX\nzzqq xx"),
        ]
        items = collate_detections(readings)
        assert [i.edited_text for i in items] == ["CRX_Ace", "ZZQQXX"]

    def test_group_cap(self, roster):
        text = "\n".join(["CRX_Ace", "CRX_Dash", "RAF_Hawk", "RAF_Owl", "Sakura"])
        items = collate_detections([make_reading(roster, 0, 0, "LT", text)], group_cap=4)
        assert len(items) == 4
        assert "Sakura" not in [i.edited_text for i in items]

    def test_unknown_rank_appended(self, roster):
        readings = [
            make_reading(roster, 0, 4, "RB", "Sakura 2キル"),
            make_reading(roster, 0, 2, "RT", "5\nCRX_Ace 1キル"),
        ]
        items = collate_detections(readings)
        assert [(i.edited_text, i.rank) for i in items] == [("CRX_Ace", 5), ("Sakura", None)]

    def test_player_on_at_most_one_non_duplicate(self, roster):
        readings = [
            make_reading(roster, i, j, label, "CRX_Ace 1キル\nRAF_Hawk 2キル")
            for i in range(3)
            for j, label in enumerate(["LT", "LB", "RT"])
        ]
        items = collate_detections(readings)
        claimed = [i.player_id for i in items if i.player_id and not i.is_duplicate]
        assert len(claimed) == len(set(claimed))


# =============================================================================
# 운영자 검토
# =============================================================================

@pytest.fixture
def session(roster, config):
    s = OcrSession(roster, screen_recognizer(), config)
    s.items = collate_detections([
        make_reading(roster, 0, 0, "LT", "CRX_Ace 3キル\nCRX_Dash"),
        make_reading(roster, 0, 2, "RT", "3\nZZQQXX 1キル"),
        make_reading(roster, 0, 4, "RB", "Sakura 2キル"),
    ])
    return s


def item_by_text(session, text):
    return next(i for i in session.items if i.edited_text == text)


class TestReview:
    """운영자 수정"""

    def test_edit_and_rematch(self, session):
        item = item_by_text(session, "ZZQQXX")
        session.edit_text(item.id, "RAF_Owl")
        session.rematch(item.id)
        assert item.player_id == "p6"
        assert item.team_id == "t3"
        assert item.raw_text == "RAF_Owl"

    def test_assign_player_recomputes_duplicates(self, session):
        unknown = item_by_text(session, "ZZQQXX")
        sakura = item_by_text(session, "Sakura")
        session.assign_player(unknown.id, "p7")
        assert unknown.player_id == "p7"
        assert unknown.match.match_type == "manual"
        assert not unknown.is_duplicate
        assert sakura.is_duplicate

    def test_assign_unknown_player(self, session):
        with pytest.raises(ValueError):
            session.assign_player(session.items[0].id, "nobody")

    def test_assign_team_makes_guest(self, session):
        item = item_by_text(session, "ZZQQXX")
        session.assign_team(item.id, "t2")
        assert item.is_guest
        assert item.team_id == "t2"
        assert item.member_key == f"guest_{item.id}"

    def test_set_kills_empty_vs_zero(self, session):
        item = session.items[0]
        assert session.set_kills(item.id, "").kills is None
        assert session.set_kills(item.id, "0").kills == 0
        assert session.set_kills(item.id, "7").kills == 7

    def test_set_rank(self, session):
        item = item_by_text(session, "Sakura")
        assert session.set_rank(item.id, "4").rank == 4
        assert session.set_rank(item.id, "?").rank is None

    def test_add_and_remove_entry(self, session):
        item = session.add_entry(rank=2)
        assert item.is_manual
        assert item.rank == 2
        assert session.items[-1] is item
        session.remove_entry(item.id)
        assert item not in session.items

    def test_unknown_item(self, session):
        with pytest.raises(UnknownItemError):
            session.set_kills("missing", 1)

    def test_unresolved(self, session):
        texts = {i.edited_text for i in session.unresolved()}
        assert texts == {"ZZQQXX", "Sakura"}

    def test_team_points(self, session):
        session.set_team_points(1, bonus="3")
        adjustment = session.set_team_points(1, penalty="1")
        assert (adjustment.bonus, adjustment.penalty) == (3, 1)


class TestSessionAggregate:
    """검토 결과 → 팀별 결과"""

    def test_aggregate(self, session, rules):
        session.set_kills(item_by_text(session, "CRX_Dash").id, "2")
        session.set_team_points(1, bonus=2)

        existing = {"t1": RoundResult(rank=1, memberKills={"p1": 9}, bonus=1)}
        result = session.aggregate(existing, rules)

        assert set(result.updated) == {"t1"}
        crux = result.updated["t1"]
        assert crux.member_kills == {"p1": 3, "p2": 2}
        assert crux.kills == 5
        assert crux.bonus == 3
        assert crux.total_points == 15 + 5 + 3
        assert {e.item_id for e in result.unresolved} == {
            item_by_text(session, "ZZQQXX").id,
            item_by_text(session, "Sakura").id,
        }

    def test_guest_kills_counted(self, session, rules):
        item = item_by_text(session, "ZZQQXX")
        session.assign_team(item.id, "t2")

        result = session.aggregate({}, rules)

        assert result.updated["t2"].member_kills == {f"guest_{item.id}": 1}
        assert result.updated["t2"].placement_points == 10
