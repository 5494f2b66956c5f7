import re
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


class ServiceType(str, Enum):
    """Which badge(s) a single invocation builds."""
    CONTRIBUTION = "contribution"
    STATS = "stats"
    LANGUAGES = "languages"
    VISITOR = "visitor"
    ALL = "all"


class PersistedRecord(BaseModel):
    """
    Base for records that are written to the key/value store.
    Serialized with camelCase keys so the stored JSON stays stable for
    anything reading the data directory.
    """
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ========== Themes ==========

class Theme(BaseModel):
    """Fixed color palette used by every template."""
    model_config = ConfigDict(frozen=True)

    background: str
    text_color: str
    accent_color: str
    secondary_color: str
    border_color: str
    progress_bar_bg: str
    progress_bar_fill: str

    @field_validator("*")
    @classmethod
    def _validate_color(cls, value: str) -> str:
        if not HEX_COLOR_PATTERN.match(value):
            raise ValueError(f"Invalid color string: {value!r}")
        return value


# ========== Aggregate records ==========

class ContributionData(PersistedRecord):
    total_days: int = Field(..., ge=0, description="Days with at least one contribution")
    last_updated: datetime
    current_streak: Optional[int] = Field(default=None, ge=0)


class VisitorData(PersistedRecord):
    count: int = Field(..., ge=0)
    last_updated: datetime


class GitHubStats(PersistedRecord):
    total_commits: int = Field(..., ge=0)
    total_prs: int = Field(..., ge=0, alias="totalPRs")
    total_issues: int = Field(..., ge=0, description="Open plus closed issues")
    total_stars: int = Field(..., ge=0, description="Stars summed over the bounded repository window")
    contributed_to: int = Field(..., ge=0)
    rank: str


class Language(PersistedRecord):
    name: str
    percentage: float = Field(..., ge=0)
    color: Optional[str] = None
    size: int = Field(..., ge=0)


class LanguagesData(PersistedRecord):
    languages: List[Language] = Field(default_factory=list)
    total_size: int = Field(default=0, ge=0)


# ========== Raw feed records (produced by the translator) ==========

class ContributionDay(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: str
    count: int = Field(..., ge=0)


class ContributionWeek(BaseModel):
    model_config = ConfigDict(frozen=True)

    days: List[ContributionDay] = Field(default_factory=list)


class ContributionCalendar(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_contributions: int = Field(default=0, ge=0)
    weeks: List[ContributionWeek] = Field(default_factory=list)


class StatsCounts(BaseModel):
    """Raw totals for the stats card before the rank is derived."""
    model_config = ConfigDict(frozen=True)

    commits: int = Field(..., ge=0)
    pull_requests: int = Field(..., ge=0)
    open_issues: int = Field(..., ge=0)
    closed_issues: int = Field(..., ge=0)
    repository_stars: List[int] = Field(default_factory=list)
    contributed_to: int = Field(..., ge=0)


class LanguageEdge(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    color: Optional[str] = None
    size: int


class RepositoryLanguages(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    is_archived: bool = False
    languages: List[LanguageEdge] = Field(default_factory=list)


class LanguagesPage(BaseModel):
    """One page of owned repositories with their language edges."""
    model_config = ConfigDict(frozen=True)

    repositories: List[RepositoryLanguages] = Field(default_factory=list)
    end_cursor: Optional[str] = None
    has_next_page: bool = False


# ========== Render options ==========

class BadgeOptions(BaseModel):
    """Single-row badge: a label box followed by a counter box."""
    model_config = ConfigDict(frozen=True)

    height: int = Field(default=28, gt=0)
    theme: Theme
    label: str
    icon: bool = True
    icon_name: str = "eye"


class StatsCardOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int = Field(default=500, gt=0)
    theme: Theme
    username: str
    hide_stats: Tuple[str, ...] = ()
    show_icons: bool = True


class LanguagesCardOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int = Field(default=500, gt=0)
    theme: Theme
    username: str
    layout: str = Field(default="default", pattern="^(default|compact)$")
    hide_languages: Tuple[str, ...] = ()
    languages_count: int = Field(default=5, ge=0)
