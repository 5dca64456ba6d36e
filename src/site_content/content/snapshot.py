"""
Content Snapshot

One complete, immutable, point-in-time view of all loaded content. A snapshot
is built in full by the loader and only then handed to the store; each
refresh cycle produces a brand new instance rather than editing the old one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .models import Post, Project, Resume


def _empty_mapping() -> Mapping:
    return MappingProxyType({})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Snapshot:
    posts: Tuple[Post, ...] = ()
    posts_by_slug: Mapping[str, Post] = field(default_factory=_empty_mapping)
    posts_by_tag: Mapping[str, Tuple[Post, ...]] = field(default_factory=_empty_mapping)

    projects: Tuple[Project, ...] = ()
    projects_by_slug: Mapping[str, Project] = field(default_factory=_empty_mapping)

    resume: Optional[Resume] = None

    # Mirror commit this snapshot was built from, when known.
    revision: Optional[str] = None
    loaded_at: datetime = field(default_factory=_utcnow)

    @property
    def tags(self) -> Tuple[str, ...]:
        """All post tags, sorted."""
        return tuple(sorted(self.posts_by_tag))

    def summary(self) -> dict:
        return {
            "posts": len(self.posts),
            "projects": len(self.projects),
            "tags": len(self.posts_by_tag),
            "resume": self.resume is not None,
            "revision": self.revision,
            "loaded_at": self.loaded_at.isoformat(),
        }
