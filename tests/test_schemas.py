"""
스키마 변환 테스트
- camelCase / snake_case 키
- 구버전 키 처리
- 대회 설정 / 일정
"""
import pytest

from data_pipeline.schemas import (
    Player,
    Team,
    RoundResult,
    ScoringRules,
    TournamentConfig,
    DEFAULT_RANK_POINTS,
    DEFAULT_TIEBREAKERS,
    DEFAULT_MAX_MEMBERS,
    round_key,
)


class TestRoster:
    def test_team_accepts_both_key_styles(self):
        camel = Team.model_validate({"id": 1, "name": "Crux", "memberIds": ["p1", 2]})
        snake = Team.model_validate({"id": "1", "name": "Crux", "member_ids": ["p1", "2"]})
        assert camel.member_ids == snake.member_ids == ["p1", "2"]
        assert camel.id == "1"

    def test_team_defaults(self):
        team = Team.model_validate({"id": "t", "name": None, "memberIds": None})
        assert team.name == ""
        assert team.member_ids == []

    def test_player_username_fallback(self):
        player = Player.model_validate({"id": 5, "username": "Ace"})
        assert player.id == "5"
        assert player.name == "Ace"
        assert player.tags == []


class TestScoringRules:
    def test_defaults(self):
        rules = ScoringRules()
        assert rules.kill_point == 1
        assert rules.rank_points == DEFAULT_RANK_POINTS
        assert rules.tiebreakers == DEFAULT_TIEBREAKERS

    def test_nulls_fall_back_to_defaults(self):
        rules = ScoringRules.model_validate({"killPoint": None, "rankPoints": None})
        assert rules.kill_point == 1
        assert rules.rank_points == DEFAULT_RANK_POINTS

    def test_legacy_keys(self):
        rules = ScoringRules.model_validate({
            "killPoints": 2,
            "placement": {"2": 7, "1": 9, "10": 1, "3": 5},
        })
        assert rules.kill_point == 2
        assert rules.rank_points == [9, 7, 5, 1]

    @pytest.mark.parametrize("rank,expected", [(1, 15), (8, 1), (20, 0), (21, 0), (0, 0), (None, 0)])
    def test_placement_points(self, rank, expected):
        assert ScoringRules().placement_points(rank) == expected


class TestRoundResult:
    def test_legacy_bonus_points(self):
        result = RoundResult.model_validate({"rank": 2, "bonusPoints": 3, "penaltyPoints": 1})
        assert (result.bonus, result.penalty) == (3, 1)

    def test_bonus_preferred_over_legacy(self):
        result = RoundResult.model_validate({"bonus": 4, "bonusPoints": 3})
        assert result.bonus == 4

    def test_kills_derived_from_members(self):
        result = RoundResult.model_validate({"rank": 1, "memberKills": {"p1": "2", "p2": "", "p3": None}})
        assert result.member_kills == {"p1": 2, "p2": None, "p3": None}
        assert result.kills == 2
        assert result.summed_kills == 2

    def test_to_record_uses_camel_case(self):
        record = RoundResult(rank=1, memberKills={"p1": 0}).to_record()
        assert record["memberKills"] == {"p1": 0}
        assert "placementPoints" in record
        assert "totalPoints" in record
        assert "member_kills" not in record

    def test_negative_rank_clamped(self):
        assert RoundResult.model_validate({"rank": -3}).rank == 0

    def test_round_key(self):
        assert round_key(4) == "round4"


class TestTournamentConfig:
    def test_from_row(self, tournament_row):
        tournament = TournamentConfig.from_row(tournament_row)
        assert tournament.name == "Spring Cup"
        assert tournament.max_teams == 16
        assert tournament.max_members == 4
        assert tournament.scoring_rules.rank_points == [15, 12, 10, 8, 6, 4, 2, 1]
        assert [d.rounds for d in tournament.schedule] == [2, 3]
        assert tournament.total_rounds == 5

    def test_top_level_tiebreakers_win(self, tournament_row):
        tournament_row["rules"]["scoringRules"]["tiebreakers"] = ["wins"]
        tournament_row["rules"]["tiebreakers"] = ["killPoints"]
        assert TournamentConfig.from_row(tournament_row).scoring_rules.tiebreakers == ["killPoints"]

    def test_missing_rules(self):
        tournament = TournamentConfig.from_row({"id": 9, "rules": None, "schedule": None})
        assert tournament.id == "9"
        assert tournament.scoring_rules.kill_point == 1
        assert tournament.max_members == DEFAULT_MAX_MEMBERS
        assert tournament.total_rounds == 0

    def test_bad_round_count_is_zero(self):
        tournament = TournamentConfig(id="t", schedule=[{"name": "X", "rounds": "abc"}])
        assert tournament.schedule[0].rounds == 0

    def test_round_slots(self, tournament_row):
        slots = TournamentConfig.from_row(tournament_row).round_slots()
        assert [s.key for s in slots] == ["round1", "round2", "round3", "round4", "round5"]
        assert slots[0].label == "Day A - Round 1"
        assert slots[2].label == "Day 2 - Round 1"
        assert (slots[4].day_index, slots[4].round_index, slots[4].global_round) == (1, 3, 5)
