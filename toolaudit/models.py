"""
Data models for the tool-usage audit
"""
from enum import Enum
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class Language(str, Enum):
    """Source language declared by a submission"""
    C = "C"
    Java = "Java"
    Kotlin = "Kotlin"
    Python = "Python"

    @property
    def prefix(self) -> str:
        # Wire language ids start with these codes ("cpp" -> C, "python3" -> Python)
        return self.value.lower()


LANGUAGES: List[Language] = list(Language)


class ToolDefinition(BaseModel):
    """One entry of the tool catalogue"""
    name: str
    prefixes: List[str] = []  # literal command-line prefixes, checked in order
    languages: List[Language] = Field(default_factory=lambda: list(LANGUAGES))

    def __str__(self) -> str:
        return self.name


class Observation(BaseModel):
    """CPU usage of one tool by one snapshot unit at one sampling tick"""
    time: int          # epoch seconds
    team: str          # team or team-workstation id
    tool: str          # tool name
    cpu: float


class Team(BaseModel):
    """Team registered in the event feed"""
    id: str
    name: str


class Submission(BaseModel):
    """Submission from the event feed; only `accepted` changes after creation"""
    id: str
    team_id: str
    problem_id: str
    language: Language
    time: int                # epoch milliseconds
    accepted: bool = False


class MismatchRecord(BaseModel):
    """Submission whose language is not expected for the tool the team was running"""
    time: int                # epoch seconds
    team_id: str
    language: Language
    tool: str


class FeedSummary(BaseModel):
    """Totals reported after reading the event feed"""
    teams: int = 0
    submissions: int = 0
    accepted: int = 0
    team_ids: List[str] = []
    min_time: Optional[int] = None   # epoch seconds
    max_time: Optional[int] = None


class AnalysisConfig(BaseModel):
    """
    Analysis configuration

    Every field has a compiled-in default; a YAML file may override any of them.
    """
    interval_seconds: int = Field(default=600, gt=0)   # bucket width
    timezone: str = "Asia/Dhaka"                       # for HH:MM report labels
    result_dir: str = "result"
    snapshot_prefix: str = "ps.team"
    snapshot_suffix: str = ".txt"
    workstation_separator: str = "-"
    user_prefix: str = "team"                          # process owner is "team<id>"
    min_cpu: float = Field(default=0.01, gt=0)         # clamp for recorded usage
    clean_commands: bool = False
    cross_reference: bool = True
    log_level: str = "INFO"

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value
