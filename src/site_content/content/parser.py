"""
Document Parser

Turns one raw document into typed metadata plus rendered HTML. Pure functions:
no filesystem access and no shared mutable state, so the loader may call them
from any thread.

Supported inputs
----------------
- Markdown with an optional front matter block at the very top, delimited by
  `---` (YAML) or `+++` (TOML).
- The structured YAML résumé, including recursive bullet trees.

Rendering
---------
markdown-it-py with the GFM-like preset (tables, strikethrough, autolinks,
raw HTML passthrough), heading anchors on every level, and Pygments
highlighting for fenced code. Content comes from a trusted repository, so raw
HTML is passed through unescaped.
"""

from __future__ import annotations

import re
import tomllib
from html import escape
from typing import Any, Dict, Tuple, Type, TypeVar

import yaml
from markdown_it import MarkdownIt
from mdit_py_plugins.anchors import anchors_plugin
from pydantic import BaseModel, ValidationError
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from .errors import DecodeError
from .models import Bullet, Resume, ResumeEntry

M = TypeVar("M", bound=BaseModel)


# ---------------------------------------------------------------------
# Markdown Engine
# ---------------------------------------------------------------------

HIGHLIGHT_STYLE = "dracula"

_code_formatter = HtmlFormatter(style=HIGHLIGHT_STYLE, noclasses=True, nowrap=True)
_code_background = get_style_by_name(HIGHLIGHT_STYLE).background_color


def _highlight_code(code: str, lang: str, attrs: str) -> str:
    """
    Highlight a fenced code block.

    Returning an empty string lets markdown-it fall back to its own escaped
    `<pre><code>` output, which is what happens for unlabelled fences and
    languages Pygments does not know.
    """
    if not lang:
        return ""
    try:
        lexer = get_lexer_by_name(lang)
    except ClassNotFound:
        return ""

    body = highlight(code, lexer, _code_formatter)
    return (
        f'<pre tabindex="0" style="background-color:{_code_background};">'
        f'<code class="language-{escape(lang)}">{body}</code></pre>'
    )


md = (
    MarkdownIt("gfm-like", {"highlight": _highlight_code})
    .use(anchors_plugin, min_level=1, max_level=6)
)


def render_markdown(text: str) -> str:
    """Render a full markdown document body to HTML."""
    return md.render(text)


def render_inline(text: str) -> str:
    """
    Render a short markdown fragment for use inside a larger HTML structure.

    The paragraph tags the renderer wraps around block text are stripped so
    the result can sit inside a list item, heading or table cell.
    """
    if not text:
        return ""
    out = md.render(text).strip()
    out = out.replace("<p>", "").replace("</p>", "")
    return out.strip()


# ---------------------------------------------------------------------
# YAML
# ---------------------------------------------------------------------

class YamlLoader(yaml.SafeLoader):
    """
    SafeLoader that keeps every plain scalar as its source text.

    Only nulls (`~`, `null`, empty) and merge keys are resolved. Words like
    `Yes`/`No`/`On`, numbers and date-like text such as `2019-05-01` reach the
    models exactly as written, and typed fields (`year`, `featured`, `date`)
    are coerced by pydantic from that text.
    """

    yaml_implicit_resolvers: Dict[Any, Any] = {}


YamlLoader.add_implicit_resolver(
    "tag:yaml.org,2002:null",
    re.compile(r"^(?:~|null|Null|NULL|)$"),
    ["~", "n", "N", ""],
)
YamlLoader.add_implicit_resolver(
    "tag:yaml.org,2002:merge",
    re.compile(r"^(?:<<)$"),
    ["<"],
)


def load_yaml(text: str) -> Any:
    """Decode one YAML document with `YamlLoader`."""
    return yaml.load(text, Loader=YamlLoader)


# ---------------------------------------------------------------------
# Front Matter
# ---------------------------------------------------------------------

_FRONT_MATTER = re.compile(
    r"\A\ufeff?(?P<fence>---|\+\+\+)[ \t]*\r?\n"
    r"(?P<body>.*?)(?:\r?\n)?"
    r"^(?P=fence)[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)


def split_front_matter(text: str) -> Tuple[Dict[str, Any], str]:
    """
    Split a document into its decoded front matter and remaining body.

    Returns an empty mapping and the untouched text when the document has no
    front matter block.

    Raises
    ------
    DecodeError
        If the block is present but is not valid YAML/TOML or not a mapping.
    """
    match = _FRONT_MATTER.match(text)
    if match is None:
        return {}, text

    block = match.group("body")
    body = text[match.end():]

    if match.group("fence") == "+++":
        try:
            return tomllib.loads(block), body
        except tomllib.TOMLDecodeError as exc:
            raise DecodeError(f"decoding front matter: {exc}") from exc

    try:
        data = load_yaml(block)
    except yaml.YAMLError as exc:
        raise DecodeError(f"decoding front matter: {exc}") from exc

    if data is None:
        return {}, body
    if not isinstance(data, dict):
        raise DecodeError(
            f"decoding front matter: expected a mapping, got {type(data).__name__}"
        )
    return data, body


def _decode_text(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"document is not valid UTF-8: {exc}") from exc


def _validate(model: Type[M], data: Dict[str, Any]) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise DecodeError(f"decoding {model.__name__}: {exc}") from exc


def parse_document(raw: bytes, meta_type: Type[M]) -> Tuple[M, str]:
    """
    Decode a markdown document into `(metadata, rendered_html)`.

    Parameters
    ----------
    raw : bytes
        Raw file contents.

    meta_type : Type[BaseModel]
        Front matter shape for this content kind (`PostMeta`, `ProjectMeta`
        or `ResumeMeta`).

    Returns
    -------
    Tuple[BaseModel, str]
        Decoded metadata (zero-valued when there is no front matter) and the
        rendered HTML of the body.

    Raises
    ------
    DecodeError
        If the front matter is present but malformed for `meta_type`.
    """
    text = _decode_text(raw)
    data, body = split_front_matter(text)
    meta = _validate(meta_type, data)
    return meta, render_markdown(body)


# ---------------------------------------------------------------------
# Structured Résumé
# ---------------------------------------------------------------------

def decode_resume(raw: bytes) -> Resume:
    """
    Decode the structured YAML résumé without rendering anything.

    Bullet trees are fully materialised here, at any depth.
    """
    try:
        data = load_yaml(_decode_text(raw))
    except yaml.YAMLError as exc:
        raise DecodeError(f"parsing resume YAML: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise DecodeError(
            f"parsing resume YAML: expected a mapping, got {type(data).__name__}"
        )
    return _validate(Resume, data)


def render_bullets(bullets: Tuple[Bullet, ...]) -> Tuple[Bullet, ...]:
    """Render a bullet tree, keeping its shape and order."""
    return tuple(
        b.model_copy(update={
            "html": render_inline(b.text),
            "sub": render_bullets(b.sub),
        })
        for b in bullets
    )


def _render_entry(entry: ResumeEntry) -> ResumeEntry:
    return entry.model_copy(update={
        "date_range": entry.dates.format(),
        "bullets": render_bullets(entry.bullets),
    })


def _render_all(items: Tuple[str, ...]) -> Tuple[str, ...]:
    return tuple(render_inline(item) for item in items)


def render_resume(resume: Resume) -> Resume:
    """Return a copy of `resume` with every narrative field rendered."""
    return resume.model_copy(update={
        "summary_html": render_inline(resume.summary),
        "experience": tuple(_render_entry(e) for e in resume.experience),
        "education": tuple(_render_entry(e) for e in resume.education),
        "research": tuple(_render_entry(e) for e in resume.research),
        "skills": tuple(
            s.model_copy(update={"detail_html": render_inline(s.detail)})
            for s in resume.skills
        ),
        "awards_html": _render_all(resume.awards),
        "presentations": tuple(
            p.model_copy(update={
                "venue_html": render_inline(p.venue),
                "date_formatted": p.date.format(),
            })
            for p in resume.presentations
        ),
        "publications": tuple(
            sec.model_copy(update={"items_html": _render_all(sec.items)})
            for sec in resume.publications
        ),
        "opensource": tuple(
            sec.model_copy(update={
                "projects": tuple(
                    proj.model_copy(update={"bullets_html": _render_all(proj.bullets)})
                    for proj in sec.projects
                ),
            })
            for sec in resume.opensource
        ),
    })


def parse_resume(raw: bytes) -> Resume:
    """Decode and render the structured résumé."""
    return render_resume(decode_resume(raw))
