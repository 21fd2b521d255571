"""
Pytest configuration and fixtures for squad standings tests
"""

import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from data_pipeline.schemas import Player, Team, ScoringRules


@pytest.fixture(scope="function")
def players():
    """로스터 선수 (p8은 어느 팀에도 없음)"""
    return [
        Player(id="p1", name="CRX_Ace"),
        Player(id="p2", name="CRX_Dash"),
        Player(id="p3", name="BZ4_Ejisos"),
        Player(id="p4", name="BZ4_NqG1"),
        Player(id="p5", name="RAF_Hawk"),
        Player(id="p6", name="RAF_Owl"),
        Player(id="p7", name="Sakura"),
        Player(id="p8", name="Orphan"),
    ]


@pytest.fixture(scope="function")
def teams():
    return [
        Team(id="t1", name="Crux", tag="CRX", memberIds=["p1", "p2"]),
        Team(id="t2", name="Blaze Four", tag="BZ4", memberIds=["p3", "p4"]),
        Team(id="t3", name="Raffles", tag="RAF", memberIds=["p5", "p6", "p7"]),
    ]


@pytest.fixture(scope="function")
def rules():
    """기본 점수 규칙"""
    return ScoringRules()


@pytest.fixture(scope="function")
def tournament_row():
    """tournaments 테이블 행 (rules JSON + schedule)"""
    return {
        "id": "tour-1",
        "name": "Spring Cup",
        "rules": {
            "scoringRules": {
                "killPoint": 1,
                "rankPoints": [15, 12, 10, 8, 6, 4, 2, 1],
            },
            "tiebreakers": ["placementPoints", "wins", "killPoints", "bonusPoints"],
            "maxTeams": 16,
            "maxMembers": 4,
        },
        "schedule": [
            {"name": "Day A", "rounds": 2},
            {"name": None, "rounds": "3"},
        ],
    }
