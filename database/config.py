"""
데이터베이스 설정
"""
from pydantic_settings import BaseSettings
from pydantic import Field
from dotenv import load_dotenv

load_dotenv()


class SupabaseConfig(BaseSettings):
    """Supabase 설정"""

    supabase_url: str = Field(default="", description="Supabase Project URL")
    supabase_key: str = Field(default="", description="Supabase anon key")

    # 테이블 이름
    tournaments_table: str = Field(default="tournaments")
    teams_table: str = Field(default="teams")
    players_table: str = Field(default="players")
    profiles_table: str = Field(default="profiles")
    results_table: str = Field(default="results")

    class Config:
        env_prefix = ""
        case_sensitive = False


supabase_config = SupabaseConfig()
