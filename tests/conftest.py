"""Pytest fixtures for wikigen tests."""

from pathlib import Path

import pytest

from wikigen.config import DirGlob, WikiConfig
from wikigen.errors import RenderError


def write_article(path: Path, title, keywords=None, body="Body text.\n", extra: str = "") -> Path:
    """Write a markdown file with a YAML metadata block."""
    lines = ["---", f"title: {title}"]
    if keywords is not None:
        lines.append(f"keywords: [{', '.join(keywords)}]")
    if extra:
        lines.append(extra.rstrip("\n"))
    lines.append("---")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n\n" + body, encoding="utf-8")
    return path


class RecordingRenderer:
    """Renderer that writes a stub page and remembers every call."""

    output_suffix = ".html"

    def __init__(self, fail_on: str = ""):
        self.calls = []
        self.fail_on = fail_on

    def render(self, source, output, root_url, variables):
        if self.fail_on and source.name == self.fail_on:
            raise RenderError(f"cannot render '{source}'", source)
        self.calls.append(
            {"source": source, "output": output, "root_url": root_url, "variables": variables}
        )
        output.write_text(f"<h1>{variables['title']}</h1>", encoding="utf-8")


@pytest.fixture
def article_writer():
    return write_article


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def failing_renderer():
    """Renderer that fails on any file called `item.md`."""
    return RecordingRenderer(fail_on="item.md")


@pytest.fixture
def wiki_config():
    """Config with `output` as the output root and one `images` asset category."""
    return WikiConfig(
        name="Test Wiki",
        others={"images": DirGlob(Path("images"), ("**/*.{png,jpg}",))},
        output_root=Path("output"),
        output_others={"images": Path("img")},
    )


@pytest.fixture
def project(tmp_path, wiki_config):
    """Project tree with an index, a nested article, a stylesheet and an image."""
    write_article(tmp_path / "index.md", "Home", keywords=["site"])
    write_article(tmp_path / "articles" / "news" / "item.md", "Item")
    (tmp_path / "style.css").write_text("body {}\n", encoding="utf-8")
    (tmp_path / "images").mkdir()
    (tmp_path / "images" / "logo.png").write_bytes(b"\x89PNG")
    return tmp_path
