"""
대회 순위표 / 결과 화면 OCR 메인
"""
import asyncio
import sys
from typing import List, Optional
from loguru import logger

from data_pipeline.schemas import TournamentConfig, round_key
from data_pipeline.validators import ResultValidator
from database.supabase_client import SupabaseDB
from ocr.config import ocr_config
from ocr.pipeline import OcrSession, Roster
from ocr.recognizer import TesseractRecognizer
from ranking.calculator import StandingsCalculator


# 로깅 설정
logger.remove()
logger.add(
    sys.stderr,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    level="INFO"
)
logger.add(
    "logs/standings_{time:YYYY-MM-DD}.log",
    rotation="1 day",
    retention="30 days",
    level="DEBUG"
)


class TournamentApp:
    """대회 순위표 / OCR 실행기"""

    def __init__(self, tournament_id: str):
        self.tournament_id = tournament_id
        self.db: Optional[SupabaseDB] = None
        self.tournament: Optional[TournamentConfig] = None
        self._initialized = False

    async def initialize(self):
        """초기화 (DB 연결 + 대회 설정 로드)"""
        try:
            self.db = SupabaseDB()
        except Exception as e:
            logger.error(f"초기화 오류: {e}")
            raise

        self.tournament = await self.db.get_tournament(self.tournament_id)
        if self.tournament is None:
            raise ValueError(f"대회를 찾을 수 없습니다: {self.tournament_id}")

        self._initialized = True
        logger.info(f"대회 로드 완료: {self.tournament.name} ({self.tournament.total_rounds}라운드)")

    async def show_standings(self, day_index: Optional[int] = None, show_players: bool = False, output: Optional[str] = None):
        """순위표 출력 / 내보내기"""
        if not self._initialized:
            await self.initialize()

        teams = await self.db.get_teams(self.tournament_id)
        players = await self.db.get_players() if (show_players or output) else []

        calculator = StandingsCalculator(self.tournament, teams, players)
        calculator.load_results(await self.db.get_results(self.tournament_id))

        title = f"{self.tournament.name} - {calculator.day_label(day_index)}"
        calculator.print_standings_summary(calculator.calculate_standings(day_index), title=title)

        if show_players:
            calculator.print_player_summary(
                calculator.calculate_player_ranking(day_index),
                title=f"{title} 킬 순위"
            )

        if output:
            calculator.export_standings(output, day_index)

    async def run_ocr(self, round_number: int, images: List[str], commit: bool = False, show_raw: bool = False) -> bool:
        """결과 화면 OCR → 검토 목록 출력 → (선택) 저장"""
        if not self._initialized:
            await self.initialize()

        key = round_key(round_number)
        roster = Roster.from_records(
            await self.db.get_player_rows(),
            await self.db.get_team_rows(self.tournament_id),
            fuzzy_ratio=ocr_config.fuzzy_ratio,
        )
        logger.info(f"로스터: {len(roster.teams)}팀, 매칭 대상 {len(roster.players)}명")

        recognizer = TesseractRecognizer(ocr_config)
        if not recognizer.check_available():
            return False

        session = OcrSession(roster, recognizer, ocr_config)
        await session.process_images(images)

        if show_raw:
            print(session.raw_text_log)

        print(f"\n=== {key} 인식 결과 ===")
        for rank, items in session.by_rank().items():
            print(f"\n[순위 {rank if rank is not None else '?'}]")
            for item in items:
                flags = []
                if item.is_duplicate:
                    flags.append("중복")
                if item.match.is_unknown:
                    flags.append("미확인")
                kills = item.kills if item.kills is not None else "-"
                team = item.team_name or "-"
                print(f"  {item.id:<18} {item.edited_text:<20} → {item.match.display_name:<16} {team:<14} 킬 {kills} {' '.join(flags)}")

        if not commit:
            return True

        existing = (await self.db.get_results(self.tournament_id)).get(key, {})
        aggregation = session.aggregate(existing, self.tournament.scoring_rules)

        validator = ResultValidator(self.tournament.scoring_rules, self.tournament.max_members)
        report = validator.validate_round(aggregation.updated)

        to_save = {}
        for team_id, result in aggregation.updated.items():
            validation = report[team_id]
            for warning in validation.warnings:
                logger.warning(f"⚠️ {team_id}: {warning.message}")
            if not validation.can_save:
                for error in validation.errors:
                    logger.error(f"❌ {team_id}: {error.message}")
                continue
            to_save[team_id] = result

        saved = await self.db.save_round_results(self.tournament_id, key, to_save)
        if aggregation.unresolved:
            logger.warning(f"⚠️ 저장되지 않은 항목 {len(aggregation.unresolved)}건 (순위/팀 미확인 또는 중복)")
        return saved == len(to_save)


async def main():
    """메인 함수"""
    import argparse

    parser = argparse.ArgumentParser(description="대회 순위표 / 결과 화면 OCR")
    parser.add_argument("tournament_id", help="대회 ID")
    subparsers = parser.add_subparsers(dest="command", required=True)

    standings_parser = subparsers.add_parser("standings", help="순위표 출력")
    standings_parser.add_argument("--day", type=int, help="일차 (1부터, 생략시 전체)")
    standings_parser.add_argument("--players", action="store_true", help="선수 킬 순위도 출력")
    standings_parser.add_argument("--output", type=str, help="JSON 내보내기 경로")

    ocr_parser = subparsers.add_parser("ocr", help="결과 화면 OCR")
    ocr_parser.add_argument("--round", type=int, required=True, help="라운드 번호 (1부터)")
    ocr_parser.add_argument("images", nargs="+", help="스크린샷 파일")
    ocr_parser.add_argument("--commit", action="store_true", help="집계 결과 저장")
    ocr_parser.add_argument("--raw", action="store_true", help="인식 원문 출력")

    args = parser.parse_args()

    app = TournamentApp(args.tournament_id)

    if args.command == "standings":
        day_index = args.day - 1 if args.day else None
        await app.show_standings(day_index, show_players=args.players, output=args.output)

    elif args.command == "ocr":
        ok = await app.run_ocr(args.round, args.images, commit=args.commit, show_raw=args.raw)
        if not ok:
            sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
