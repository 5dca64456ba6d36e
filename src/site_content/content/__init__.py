"""
Content Package

Mirror sync, document parsing, snapshot loading and the hot-swap store that
publishes loaded content to readers.
"""

from .errors import (
    ContentError,
    ContentLoadError,
    DecodeError,
    ParseError,
    SyncError,
)
from .loader import load_from_dir
from .models import (
    Bullet,
    DateRange,
    Post,
    PostMeta,
    Project,
    ProjectMeta,
    Resume,
    ResumeDate,
    ResumeMeta,
)
from .parser import parse_document, parse_resume, render_inline
from .refresh import ContentRefresher, stop_refresher
from .snapshot import Snapshot
from .store import SnapshotStore
from .sync import SyncConfig, SyncResult, SyncStatus, clone_or_pull

__all__ = [
    "ContentError",
    "ContentLoadError",
    "DecodeError",
    "ParseError",
    "SyncError",
    "load_from_dir",
    "Bullet",
    "DateRange",
    "Post",
    "PostMeta",
    "Project",
    "ProjectMeta",
    "Resume",
    "ResumeDate",
    "ResumeMeta",
    "parse_document",
    "parse_resume",
    "render_inline",
    "ContentRefresher",
    "stop_refresher",
    "Snapshot",
    "SnapshotStore",
    "SyncConfig",
    "SyncResult",
    "SyncStatus",
    "clone_or_pull",
]
