"""
Content Data Models

Typed records produced by the document parser. Every model is frozen and
stores collections as tuples, so a published snapshot cannot be mutated
through any reference handed to a reader.

Front matter comes in a closed set of shapes, one per content kind:

- `PostMeta`    blog posts
- `ProjectMeta` project pages
- `ResumeMeta`  legacy single-file markdown résumé

Each shape has a zero value for every field, so a document without front
matter still decodes.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class _Frozen(BaseModel):
    model_config = ConfigDict(
        extra="ignore",          # Unknown front matter keys are not errors
        frozen=True,
        coerce_numbers_to_str=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, value: Any) -> Any:
        # An empty YAML key ("tags:") decodes to None; treat it as unset.
        if isinstance(value, dict):
            return {k: v for k, v in value.items() if v is not None}
        return value


# ---------------------------------------------------------------------
# Front Matter
# ---------------------------------------------------------------------

class PostMeta(_Frozen):
    title: str = ""
    date: Optional[datetime] = None
    description: str = ""
    tags: Tuple[str, ...] = ()

    @field_validator("date", mode="before")
    @classmethod
    def _date_to_datetime(cls, v: Any) -> Any:
        # YAML leaves "2024-01-15" as text; TOML gives a date, which pydantic
        # will not widen to a datetime.
        if isinstance(v, str):
            try:
                v = datetime.fromisoformat(v.strip())
            except ValueError:
                return v
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime.combine(v, time.min)
        return v

    @field_validator("date")
    @classmethod
    def _assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class ProjectMeta(PostMeta):
    repo: str = ""
    url: str = ""
    status: str = ""
    featured: bool = False


class ResumeMeta(_Frozen):
    name: str = ""
    tagline: str = ""


# ---------------------------------------------------------------------
# Content Records
# ---------------------------------------------------------------------

class Post(PostMeta):
    """A blog post: front matter plus slug and rendered body."""

    slug: str
    content: str = ""


class Project(ProjectMeta):
    """A project page: front matter plus slug and rendered body."""

    slug: str
    content: str = ""


# ---------------------------------------------------------------------
# Résumé Dates
# ---------------------------------------------------------------------

SHORT_MONTHS = (
    "Jan.", "Feb.", "Mar.", "Apr.", "May", "June",
    "July", "Aug.", "Sept.", "Oct.", "Nov.", "Dec.",
)


class ResumeDate(_Frozen):
    year: int = 0
    month: Optional[int] = None

    def format(self) -> str:
        """Render as "Month Year", or just "Year" when no valid month is set."""
        if self.month is not None and 1 <= self.month <= 12:
            return f"{SHORT_MONTHS[self.month - 1]} {self.year}"
        return str(self.year)


class DateRange(_Frozen):
    start: ResumeDate
    end: Optional[ResumeDate] = None

    def format(self) -> str:
        """Render as "Start – End", or "Start – Present" when open-ended."""
        if self.end is None:
            return f"{self.start.format()} – Present"
        return f"{self.start.format()} – {self.end.format()}"

    def __str__(self) -> str:
        return self.format()


# ---------------------------------------------------------------------
# Résumé Sections
# ---------------------------------------------------------------------

class Bullet(_Frozen):
    """
    One résumé bullet and its nested sub-bullets.

    In YAML a bullet is either a plain string or a mapping with `text` and an
    optional `sub` list of further bullets, nested to any depth. `html` is
    filled in by the renderer once the whole tree has been decoded.
    """

    text: str = ""
    sub: Tuple[Bullet, ...] = ()
    html: str = ""

    @model_validator(mode="before")
    @classmethod
    def _from_scalar(cls, value: Any) -> Any:
        if value is None:
            return {"text": ""}
        if isinstance(value, (str, int, float)):
            return {"text": str(value)}
        return value


class ResumeEntry(_Frozen):
    title: str = ""
    organization: str = ""
    location: str = ""
    start: ResumeDate = Field(default_factory=ResumeDate)
    end: Optional[ResumeDate] = None
    note: str = ""
    bullets: Tuple[Bullet, ...] = ()
    date_range: str = ""

    @property
    def dates(self) -> DateRange:
        return DateRange(start=self.start, end=self.end)


class ResumeSkill(_Frozen):
    category: str = ""
    detail: str = ""
    detail_html: str = ""


class ResumePresentation(_Frozen):
    title: str = ""
    venue: str = ""
    venue_html: str = ""
    date: ResumeDate = Field(default_factory=ResumeDate)
    date_formatted: str = ""


class ResumePubSection(_Frozen):
    section: str = ""
    items: Tuple[str, ...] = ()
    items_html: Tuple[str, ...] = ()


class ResumeLink(_Frozen):
    text: str = ""
    url: str = ""


class ResumeOSSProject(_Frozen):
    name: str = ""
    tagline: str = ""
    bullets: Tuple[str, ...] = ()
    bullets_html: Tuple[str, ...] = ()
    links: Tuple[ResumeLink, ...] = ()


class ResumeOSSSection(_Frozen):
    section: str = ""
    projects: Tuple[ResumeOSSProject, ...] = ()


class Resume(_Frozen):
    """
    Structured résumé.

    Narrative fields keep their raw markdown alongside an inline-rendered
    `*_html` form. `content` is only set for the legacy markdown résumé, where
    the whole document is rendered as one opaque body.
    """

    name: str = ""
    tagline: str = ""
    summary: str = ""
    summary_html: str = ""

    experience: Tuple[ResumeEntry, ...] = ()
    education: Tuple[ResumeEntry, ...] = ()
    skills: Tuple[ResumeSkill, ...] = ()
    research: Tuple[ResumeEntry, ...] = ()
    awards: Tuple[str, ...] = ()
    awards_html: Tuple[str, ...] = ()
    presentations: Tuple[ResumePresentation, ...] = ()
    publications: Tuple[ResumePubSection, ...] = ()
    opensource: Tuple[ResumeOSSSection, ...] = ()

    content: str = ""
