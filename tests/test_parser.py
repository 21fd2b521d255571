"""
결과 화면 영역 텍스트 파싱 테스트
"""
import pytest

from ocr.parser import parse_region_text, detect_rank, is_hallucination, clean_entry_name


def names_and_kills(parsed):
    return [(e.name, e.kills) for e in parsed.entries]


class TestRankDetection:
    """순위 판정 우선순위"""

    def test_standalone_number(self):
        parsed = parse_region_text("3\nCRX_Ace 5キル\nRAF_Hawk 2キル", "RT")
        assert parsed.rank == 3
        assert names_and_kills(parsed) == [("CRX_Ace", 5), ("RAF_Hawk", 2)]

    @pytest.mark.parametrize("token,expected", [("b", 6), ("a", 4), ("B", 6), ("*7*", 7)])
    def test_standalone_glyphs(self, token, expected):
        assert detect_rank([token, "CRX_Ace 1キル"], "RM") == expected

    def test_leading_number(self):
        parsed = parse_region_text("5 CRX_Ace 3キル\nRAF_Hawk 1キル", "RM")
        assert parsed.rank == 5
        assert names_and_kills(parsed) == [("CRX_Ace", 3), ("RAF_Hawk", 1)]

    @pytest.mark.parametrize("label,expected", [("LT", 1), ("LB", 2), ("RT", None), ("RM", None), ("RB", None)])
    def test_position_fallback(self, label, expected):
        parsed = parse_region_text("CRX_Ace 3キル", label)
        assert parsed.rank == expected

    def test_text_rank_beats_position(self):
        assert parse_region_text("4\nCRX_Ace 3キル", "LT").rank == 4


class TestKills:
    """킬 수 판독"""

    def test_lone_digit_attaches_to_previous(self):
        parsed = parse_region_text("3\nCRX_Ace\n4\nRAF_Hawk 2キル", "RT")
        assert names_and_kills(parsed) == [("CRX_Ace", 4), ("RAF_Hawk", 2)]

    def test_lone_digit_does_not_overwrite_zero(self):
        """0킬로 읽힌 값은 빈 값이 아님"""
        parsed = parse_region_text("3\nCRX_Ace 0キル\n5", "RT")
        assert names_and_kills(parsed) == [("CRX_Ace", 0)]

    def test_rank_header_not_used_as_kills(self):
        parsed = parse_region_text("CRX_Ace\n2", "LB")
        assert names_and_kills(parsed) == [("CRX_Ace", None)]

    def test_glyph_mapping(self):
        parsed = parse_region_text("3\nRAF_Hawk ロキル", "RT")
        assert names_and_kills(parsed) == [("RAF_Hawk", 5)]

    def test_suffix_marker_without_number(self):
        parsed = parse_region_text("3\nRAF_Hawk|", "RT")
        assert names_and_kills(parsed) == [("RAF_Hawk", None)]

    def test_tag_digits_not_taken_as_kills(self):
        parsed = parse_region_text("3\nBZ4_Ejisos 3キル", "RT")
        assert len(parsed.entries) == 1
        assert parsed.entries[0].kills == 3
        assert parsed.entries[0].name.endswith("Ejisos")


class TestNoiseFiltering:
    """UI 라벨 / 환각 제거"""

    def test_system_labels_dropped(self):
        parsed = parse_region_text("PUBG MOBILE\n2\nCRX_Ace 3キル", "RT")
        assert parsed.rank == 2
        assert names_and_kills(parsed) == [("CRX_Ace", 3)]

    def test_hallucinations(self):
        assert is_hallucination("hx")
        assert is_hallucination("AZ")
        assert is_hallucination("x")
        assert not is_hallucination("Moon")
        assert not is_hallucination("CRX_AZ")
        assert not is_hallucination("NS")

    def test_hallucination_lines_dropped(self):
        parsed = parse_region_text("3\nhx\nCRX_Ace 1キル\nAZ", "RT")
        assert names_and_kills(parsed) == [("CRX_Ace", 1)]

    def test_name_cleanup(self):
        assert clean_entry_name("1 CRX_Ace") == "CRX_Ace"
        assert clean_entry_name("* CRX_Ace :") == "CRX_Ace"
        assert clean_entry_name("シンノンSakura") == "Sakura"

    def test_empty_text(self):
        parsed = parse_region_text("", "RB")
        assert parsed.rank is None
        assert parsed.entries == []
