"""
Directory Loader

Builds a complete `Snapshot` from a content directory laid out as:

    <root>/blog/*.md          blog posts
    <root>/projects/*.md      project pages
    <root>/resume/resume.yaml structured résumé (resume.md as legacy fallback)

A missing subdirectory yields an empty collection. Any document that fails to
read or parse aborts the whole load: the caller either gets a full snapshot
or an exception, never a partial one.
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Dict, List, Optional, Tuple, TypeVar

from .errors import ContentLoadError, DecodeError, ParseError
from .models import Post, PostMeta, Project, ProjectMeta, Resume, ResumeMeta
from .parser import parse_document, parse_resume
from .snapshot import Snapshot

logger = logging.getLogger("site.loader")

T = TypeVar("T", Post, Project)


# ---------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------

BLOG_DIR = "blog"
PROJECTS_DIR = "projects"
RESUME_DIR = "resume"

DOCUMENT_EXTENSIONS = (".md", ".markdown")
RESUME_STRUCTURED_FILES = ("resume.yaml", "resume.yml")
RESUME_LEGACY_FILE = "resume.md"


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise ParseError(f"reading file: {exc}", path=path) from exc


def _document_files(directory: Path) -> List[Path]:
    """
    Return eligible documents in `directory`, sorted by filename.

    Subdirectories and files with other extensions are skipped.
    """
    try:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
    except FileNotFoundError:
        return []
    except OSError as exc:
        raise ContentLoadError(f"listing directory: {exc}", path=directory) from exc

    return [
        p for p in entries
        if p.suffix.lower() in DOCUMENT_EXTENSIONS and p.is_file()
    ]


def _by_date_desc(item: PostMeta) -> float:
    return item.date.timestamp() if item.date is not None else float("-inf")


def load_markdown_dir(
    directory: Path,
    build: Callable[[bytes, str], T],
) -> Tuple[T, ...]:
    """
    Parse every markdown document in `directory`, newest first.

    Files are processed in filename order; when two files map to the same
    slug the later one replaces the earlier. Sorting is stable, so items with
    equal dates keep that filename order.

    Raises
    ------
    ParseError
        If any single document fails to decode.
    """
    items: Dict[str, T] = {}
    for path in _document_files(directory):
        slug = path.stem
        raw = _read_bytes(path)
        try:
            item = build(raw, slug)
        except DecodeError as exc:
            raise ParseError(f"parsing document: {exc}", path=path) from exc

        if slug in items:
            logger.warning("Duplicate slug %r in %s; %s wins", slug, directory, path.name)
            del items[slug]
        items[slug] = item

    return tuple(sorted(items.values(), key=_by_date_desc, reverse=True))


def _build_post(raw: bytes, slug: str) -> Post:
    meta, html = parse_document(raw, PostMeta)
    return Post(**meta.model_dump(), slug=slug, content=html)


def _build_project(raw: bytes, slug: str) -> Project:
    meta, html = parse_document(raw, ProjectMeta)
    return Project(**meta.model_dump(), slug=slug, content=html)


# ---------------------------------------------------------------------
# Per-kind Loaders
# ---------------------------------------------------------------------

def load_posts(directory: Path) -> Tuple[Tuple[Post, ...], Dict[str, Post], Dict[str, Tuple[Post, ...]]]:
    posts = load_markdown_dir(directory, _build_post)

    by_slug: Dict[str, Post] = {}
    by_tag: Dict[str, List[Post]] = {}
    for post in posts:
        by_slug[post.slug] = post
        for tag in dict.fromkeys(post.tags):
            by_tag.setdefault(tag, []).append(post)

    return posts, by_slug, {tag: tuple(items) for tag, items in by_tag.items()}


def load_projects(directory: Path) -> Tuple[Tuple[Project, ...], Dict[str, Project]]:
    projects = load_markdown_dir(directory, _build_project)
    return projects, {p.slug: p for p in projects}


def load_resume(directory: Path) -> Optional[Resume]:
    """
    Load the résumé, preferring the structured YAML document.

    The single markdown file is only consulted when no structured file
    exists; its body is kept as one pre-rendered block.
    """
    for name in RESUME_STRUCTURED_FILES:
        path = directory / name
        if path.is_file():
            try:
                return parse_resume(_read_bytes(path))
            except DecodeError as exc:
                raise ParseError(f"parsing resume: {exc}", path=path) from exc

    path = directory / RESUME_LEGACY_FILE
    if path.is_file():
        try:
            meta, html = parse_document(_read_bytes(path), ResumeMeta)
        except DecodeError as exc:
            raise ParseError(f"parsing resume: {exc}", path=path) from exc
        return Resume(name=meta.name, tagline=meta.tagline, content=html)

    return None


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

def load_from_dir(root: Path | str, *, revision: Optional[str] = None) -> Snapshot:
    """
    Build a snapshot from the content tree at `root`.

    Parameters
    ----------
    root : Path | str
        Content root holding the `blog`, `projects` and `resume` directories.

    revision : Optional[str]
        Mirror commit the tree was checked out at, recorded on the snapshot.

    Raises
    ------
    ContentLoadError
        If a file cannot be read; `ParseError` if a document cannot be decoded.
    """
    root = Path(root)

    posts, posts_by_slug, posts_by_tag = load_posts(root / BLOG_DIR)
    projects, projects_by_slug = load_projects(root / PROJECTS_DIR)
    resume = load_resume(root / RESUME_DIR)

    logger.debug(
        "Loaded %d posts, %d projects from %s", len(posts), len(projects), root
    )

    return Snapshot(
        posts=posts,
        posts_by_slug=MappingProxyType(posts_by_slug),
        posts_by_tag=MappingProxyType(posts_by_tag),
        projects=projects,
        projects_by_slug=MappingProxyType(projects_by_slug),
        resume=resume,
        revision=revision,
    )
