"""
Supabase 데이터베이스 클라이언트

대회 설정, 로스터(팀/선수), 라운드 결과 조회와 결과 저장.
오류는 로그로 남기고 빈 값(None / [] / {} / False)을 돌려준다.
"""
from typing import List, Optional, Dict, Any
from supabase import create_client, Client
from pydantic import ValidationError as PydanticValidationError
from loguru import logger

from data_pipeline.schemas import Player, Team, RoundResult, TournamentConfig
from .config import SupabaseConfig, supabase_config


class SupabaseDB:
    """Supabase 데이터베이스 클라이언트"""

    def __init__(self, config: Optional[SupabaseConfig] = None, client: Optional[Client] = None):
        self.config = config or supabase_config

        if client is not None:
            self.client = client
            return

        if not self.config.supabase_url or not self.config.supabase_key:
            raise ValueError("SUPABASE_URL과 SUPABASE_KEY 환경변수를 설정해주세요")

        self.client: Client = create_client(
            self.config.supabase_url,
            self.config.supabase_key
        )

    # ==================== 대회 ====================

    async def get_tournament(self, tournament_id: str) -> Optional[TournamentConfig]:
        """대회 설정 조회 (rules / schedule 포함)"""
        try:
            result = self.client.table(self.config.tournaments_table).select("*").eq(
                "id", tournament_id
            ).execute()

            if not result.data:
                logger.warning(f"대회 없음: {tournament_id}")
                return None
            return TournamentConfig.from_row(result.data[0])
        except Exception as e:
            logger.error(f"대회 조회 오류: {e}")
            return None

    # ==================== 로스터 ====================

    async def get_team_rows(self, tournament_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """팀 원본 행"""
        try:
            query = self.client.table(self.config.teams_table).select("*")
            if tournament_id:
                query = query.eq("tournament_id", tournament_id)
            result = query.execute()
            return result.data or []
        except Exception as e:
            logger.error(f"팀 조회 오류: {e}")
            return []

    async def get_teams(self, tournament_id: Optional[str] = None) -> List[Team]:
        return [Team.model_validate(row) for row in await self.get_team_rows(tournament_id)]

    async def get_player_rows(self) -> List[Dict[str, Any]]:
        """선수 원본 행 (players 테이블 오류 시 profiles로 대체)"""
        try:
            result = self.client.table(self.config.players_table).select("*").execute()
            return result.data or []
        except Exception as e:
            logger.warning(f"⚠️ players 조회 실패, profiles로 대체: {e}")

        try:
            result = self.client.table(self.config.profiles_table).select("*").execute()
            return [
                {"id": p.get("id"), "name": p.get("username"), "tags": []}
                for p in (result.data or [])
            ]
        except Exception as e:
            logger.error(f"선수 조회 오류: {e}")
            return []

    async def get_players(self) -> List[Player]:
        return [Player.model_validate(row) for row in await self.get_player_rows()]

    # ==================== 라운드 결과 ====================

    async def get_results(self, tournament_id: str) -> Dict[str, Dict[str, RoundResult]]:
        """
        대회 결과 조회

        Returns:
            {"round1": {team_id: RoundResult}, ...}
        """
        try:
            result = self.client.table(self.config.results_table).select("*").eq(
                "tournament_id", tournament_id
            ).execute()
        except Exception as e:
            logger.error(f"결과 조회 오류: {e}")
            return {}

        formatted: Dict[str, Dict[str, RoundResult]] = {}
        for row in result.data or []:
            try:
                parsed = RoundResult.model_validate(row.get("data") or {})
            except PydanticValidationError as e:
                logger.warning(f"⚠️ 결과 행 무시 ({row.get('round')}/{row.get('team_id')}): {e}")
                continue
            formatted.setdefault(row["round"], {})[str(row["team_id"])] = parsed
        return formatted

    async def save_result(
        self,
        tournament_id: str,
        round_key: str,
        team_id: str,
        result: RoundResult,
    ) -> bool:
        """라운드 결과 저장 (팀 + 라운드 기준 갱신 또는 추가)"""
        payload = {
            "tournament_id": tournament_id,
            "round": round_key,
            "team_id": team_id,
            "data": result.to_record(),
        }

        try:
            existing = self.client.table(self.config.results_table).select("id").eq(
                "tournament_id", tournament_id
            ).eq(
                "round", round_key
            ).eq(
                "team_id", team_id
            ).execute()

            if existing.data:
                self.client.table(self.config.results_table).update(payload).eq(
                    "id", existing.data[0]["id"]
                ).execute()
            else:
                self.client.table(self.config.results_table).insert(payload).execute()
            return True
        except Exception as e:
            logger.error(f"결과 저장 오류 ({round_key}/{team_id}): {e}")
            return False

    async def save_round_results(
        self,
        tournament_id: str,
        round_key: str,
        results: Dict[str, RoundResult],
    ) -> int:
        """라운드 결과 일괄 저장"""
        success_count = 0
        for team_id, result in results.items():
            if await self.save_result(tournament_id, round_key, team_id, result):
                success_count += 1
        logger.info(f"💾 {round_key}: {success_count}/{len(results)}팀 저장")
        return success_count
