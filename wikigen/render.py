from __future__ import annotations

import html
import logging
import re
import subprocess
import tempfile
from pathlib import Path
from typing import Optional, Protocol

import markdown
import yaml

from .content import ArticleNode, split_front_matter
from .errors import RenderError, WikiIOError
from .pages import build_keywords_meta, build_sidebar, build_sub_articles, build_toc
from .utils import output_depth, relative_root

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
ROOT_PLACEHOLDER_RE = re.compile(r"%ROOT%/?")
MATH_OPTIONS = {
    "mathjax": "--mathjax",
    "mathml": "--mathml",
    "webtex": "--webtex",
    "katex": "--katex",
    "gladtex": "--gladtex",
}

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    output_suffix: str

    def render(self, source: Path, output: Path, root_url: str, variables: dict) -> None: ...


def render_template(template: str, **context: str) -> str:
    output = template
    late_keys = {"content", "sidebar"}
    for key, value in context.items():
        if key in late_keys:
            continue
        output = output.replace(f"{{{{{key}}}}}", value)
    for key in late_keys:
        if key in context:
            output = output.replace(f"{{{{{key}}}}}", context[key])
    return output


def replace_root(text: str, root_url: str) -> str:
    return ROOT_PLACEHOLDER_RE.sub(lambda _: root_url, text)


def read_template(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


class MarkdownRenderer:
    """Renders articles with Python-Markdown into the bundled page template."""

    output_suffix = ".html"

    def __init__(self, template: Optional[str] = None, toc_depth: int = 3):
        self.template = template if template is not None else read_template(TEMPLATES_DIR / "article.html")
        self.toc_depth = toc_depth

    def convert(self, text: str) -> tuple[str, str]:
        md = markdown.Markdown(
            extensions=["fenced_code", "tables", "toc", "codehilite"],
            extension_configs={
                "toc": {"toc_depth": self.toc_depth},
                "codehilite": {"guess_lang": False},
            },
        )
        content = md.convert(text)
        return content, md.toc

    def render(self, source: Path, output: Path, root_url: str, variables: dict) -> None:
        try:
            text = source.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise RenderError(f"Error while reading the article '{source}': {exc}", source) from exc
        _, body = split_front_matter(text)
        try:
            content, toc_html = self.convert(body)
        except Exception as exc:
            raise RenderError(f"markdown error in '{source}': {exc}", source) from exc

        title = variables.get("title", "")
        page = render_template(
            self.template,
            title=html.escape(title),
            site_name=html.escape(variables.get("site-name", "")),
            keywords_meta=build_keywords_meta(variables.get("keywords") or []),
            css=html.escape(root_url + variables.get("css", "")),
            script=html.escape(root_url + variables.get("script-file", "")),
            toc=build_toc(toc_html, variables.get("toc-title", "")),
            sub_articles=build_sub_articles(
                variables.get("current-sub-articles") or [],
                root_url,
                variables.get("sub-articles-title", ""),
            ),
            sidebar=build_sidebar(variables.get("sidebar-data") or {}, root_url, variables.get("current-id", "")),
            content=content,
        )
        try:
            write_text(output, replace_root(page, root_url))
        except OSError as exc:
            raise WikiIOError("writing the article", output, exc) from exc


class PandocRenderer:
    """Renders articles by running the ``pandoc`` executable."""

    output_suffix = ".html"

    def __init__(
        self,
        executable: str = "pandoc",
        template: Optional[Path] = None,
        toc_depth: int = 3,
        math: Optional[tuple[str, Optional[str]]] = None,
        debug: bool = False,
    ):
        self.executable = executable
        self.template = template
        self.toc_depth = toc_depth
        self.math = math
        self.debug = debug

    def command(self, source: Path, output: Path, root_url: str, defaults: Path, css: str) -> list[str]:
        cmd = [
            self.executable,
            str(source),
            "--standalone",
            "--toc",
            f"--toc-depth={self.toc_depth}",
            f"--defaults={defaults}",
            f"--output={output}",
            "--variable",
            f"base-url={root_url}",
        ]
        if css:
            cmd.append(f"--css={root_url}{css}")
        if self.template is not None:
            cmd.append(f"--template={self.template}")
        if self.math is not None:
            engine, url = self.math
            option = MATH_OPTIONS[engine]
            cmd.append(f"{option}={url}" if url and engine != "gladtex" else option)
        return cmd

    def render(self, source: Path, output: Path, root_url: str, variables: dict) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            defaults = Path(tmp) / "defaults.yaml"
            defaults.write_text(
                yaml.safe_dump({"variables": variables}, sort_keys=False, allow_unicode=True),
                encoding="utf-8",
            )
            cmd = self.command(source, output, root_url, defaults, variables.get("css", ""))
            if self.debug:
                logger.info("Running %s", " ".join(cmd))
            try:
                result = subprocess.run(cmd, capture_output=True, text=True)
            except FileNotFoundError as exc:
                raise RenderError(f"pandoc not found: '{self.executable}'", source) from exc
        if result.returncode != 0:
            raise RenderError(f"pandoc error on '{source}': {result.stderr.strip()}", source)
        try:
            text = output.read_text(encoding="utf-8")
            output.write_text(replace_root(text, root_url), encoding="utf-8")
        except OSError as exc:
            raise WikiIOError("post-processing the article", output, exc) from exc


def render_tree(root: ArticleNode, renderer: Renderer, output_root: Path, variables: dict) -> list[Path]:
    """Render every real article of the tree, depth first.

    Stops at the first failure. Returns the written output paths in
    rendering order.
    """
    sidebar = root.to_dict()
    written = []
    for node, _ in root.walk():
        if node.is_synthetic:
            continue
        root_url = relative_root(output_depth(node.output_path, output_root))
        page_vars = dict(variables)
        for key, value in node.extra.items():
            page_vars.setdefault(key, value)
        page_vars.update(
            {
                "sidebar-data": sidebar,
                "current-sub-articles": [child.to_dict() for child in node.children],
                "current-id": node.id,
                "title": node.title,
                "keywords": list(node.keywords),
            }
        )
        try:
            node.output_path.parent.mkdir(parents=True, exist_ok=True)
            # a symlink left in the output is replaced, never written through
            if node.output_path.is_symlink():
                node.output_path.unlink()
        except OSError as exc:
            raise WikiIOError("creating the directory", node.output_path.parent, exc) from exc
        renderer.render(node.source_path, node.output_path, root_url, page_vars)
        logger.info('Processed "%s"', node.source_path)
        written.append(node.output_path)
    return written
