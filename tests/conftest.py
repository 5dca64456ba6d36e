from pathlib import Path
from typing import Callable

import pytest


@pytest.fixture
def content_dir(tmp_path: Path) -> Path:
    root = tmp_path / "content"
    root.mkdir()
    return root


@pytest.fixture
def write_doc(content_dir: Path) -> Callable[[str, str], Path]:
    """Write `text` to `content_dir/<relpath>`, creating directories."""
    def _write(relpath: str, text: str) -> Path:
        path = content_dir / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path
    return _write


def post_source(title: str, date: str, tags: str = "[]", body: str = "Content.") -> str:
    return f"""---
title: {title}
date: {date}
description: About {title}
tags: {tags}
---

{body}
"""
