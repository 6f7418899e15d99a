from __future__ import annotations

import argparse
import logging
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml
from pygments.formatters import HtmlFormatter

from .cache import OutputTracker, clean_output_dir, copy_file
from .config import CONFIG_FILENAME, WikiConfig, default_config, load_config
from .content import ArticleNode, extract_metadata
from .errors import ConfigurationError, WikiError, WikiIOError
from .render import TEMPLATES_DIR, MarkdownRenderer, PandocRenderer, Renderer, render_tree
from .tree import assemble, group_by_parent
from .utils import title_case
from .walker import ARTICLES, classify

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    tree: ArticleNode
    processed: list[Path] = field(default_factory=list)
    copied: int = 0
    deleted: list[Path] = field(default_factory=list)


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure logging for the CLI."""
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stdout,
    )


def make_renderer(config: WikiConfig, project_root: Path) -> Renderer:
    if config.renderer == "pandoc":
        template = project_root / config.pandoc_template if config.pandoc_template else None
        return PandocRenderer(
            template=template,
            toc_depth=config.toc_depth,
            math=config.math_renderer,
            debug=config.debug_pandoc_cmd,
        )
    return MarkdownRenderer(toc_depth=config.toc_depth)


def build_site(
    config: WikiConfig,
    project_root: Path,
    config_path: Optional[Path] = None,
    renderer: Optional[Renderer] = None,
) -> BuildResult:
    """Run one full build of the wiki described by ``config``."""
    output_root = project_root / config.output_root
    index_path = project_root / config.index
    style_path = project_root / config.style
    categories = config.categories(project_root)

    excluded = [output_root, index_path, style_path]
    if config_path is not None:
        excluded.append(config_path)
    classification = classify(categories, excluded)
    if not index_path.is_file():
        raise ConfigurationError(f"The index file, '{config.index}', not found")

    if renderer is None:
        renderer = make_renderer(config, project_root)
    suffix = renderer.output_suffix

    tracker = OutputTracker(output_root)
    try:
        output_root.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise WikiIOError("creating the output directory", output_root, exc) from exc

    copied = 0
    for category in categories:
        if category.name == ARTICLES:
            continue
        for path in classification.assets.get(category.name, []):
            dest = tracker.retain(category.output_path(path, output_root))
            copy_file(path, dest)
            logger.debug("Copied '%s' to '%s'", path, dest)
            copied += 1
    if style_path.is_file():
        copy_file(style_path, tracker.retain(output_root / config.output_style))
        copied += 1
    else:
        logger.warning("The stylesheet '%s' does not exist", config.style)

    articles = categories[0]
    index_record = extract_metadata(index_path, output_root / config.index.with_suffix(suffix), output_root)
    records = [
        extract_metadata(path, articles.output_path(path, output_root).with_suffix(suffix), output_root)
        for path in classification.articles
    ]
    tree = assemble(index_record, group_by_parent(records, articles.base))
    for node, _ in tree.walk():
        if not node.is_synthetic:
            tracker.retain(node.output_path)

    variables = {
        "site-name": config.name,
        "sub-articles-title": config.sub_articles_title,
        "toc-title": config.toc_title,
        "script-file": config.script,
        "css": config.output_style.as_posix(),
    }
    logger.info("Processing articles...")
    processed = render_tree(tree, renderer, output_root, variables)
    deleted = tracker.reconcile()
    return BuildResult(tree=tree, processed=processed, copied=copied, deleted=deleted)


def create_new(path: Path) -> WikiConfig:
    """Create a new example wiki project at ``path``."""
    if path.exists():
        raise ConfigurationError(f"The directory '{path}' exists already")
    name = path.resolve().name
    if not name:
        raise ConfigurationError("No name given")
    config = default_config(name)
    try:
        path.mkdir(parents=True)
        config.ensure_dirs(path)
        (path / CONFIG_FILENAME).write_text(
            yaml.safe_dump(config.to_dict(), sort_keys=False, allow_unicode=True), encoding="utf-8"
        )
        stylesheet = (TEMPLATES_DIR / "style.css").read_text(encoding="utf-8")
        highlight = HtmlFormatter().get_style_defs(".codehilite")
        (path / config.style).write_text(f"{stylesheet}\n{highlight}\n", encoding="utf-8")
        (path / config.others["scripts"].base / "main.js").write_text("", encoding="utf-8")
        (path / config.index).write_text(
            f"---\n# Pandoc metadata\ntitle: {name}\nkeywords:\n- site\n---\n\nHello world!\n", encoding="utf-8"
        )
        (path / config.articles.base / "example.md").write_text(
            "---\n# Pandoc metadata\ntitle: Example\nkeywords: []\n---\n\nExample article.\n", encoding="utf-8"
        )
    except OSError as exc:
        raise WikiIOError("creating the project", path, exc) from exc
    return config


def add_article(config: WikiConfig, project_root: Path, path: Path) -> Path:
    article = project_root / config.articles.base / path
    if not article.suffix:
        article = article.with_suffix(".md")
    if article.exists():
        raise ConfigurationError(f"File '{article}' already exists")
    title = title_case(article.stem)
    try:
        article.parent.mkdir(parents=True, exist_ok=True)
        article.write_text(
            f"---\n# Pandoc metadata\ntitle: {title}\nkeywords: []\n---\n\nText goes here.\n", encoding="utf-8"
        )
    except OSError as exc:
        raise WikiIOError("writing the file", article, exc) from exc
    return article


def cmd_build(args: argparse.Namespace) -> int:
    config_path = Path(args.config).resolve()
    start = time.perf_counter()
    try:
        config = load_config(config_path)
    except ConfigurationError as exc:
        logger.error(f"Configuration error: {exc}")
        return 1
    try:
        result = build_site(config, config_path.parent, config_path)
    except WikiError as exc:
        logger.error(f"Build error: {exc}")
        return 1
    elapsed = time.perf_counter() - start
    logger.info(f"---\n{len(result.processed)} files processed.")
    logger.info(f"Build completed in {elapsed:.2f}s.")
    logger.info("All done")
    return 0


def cmd_clean(args: argparse.Namespace) -> int:
    config_path = Path(args.config).resolve()
    try:
        config = load_config(config_path)
    except ConfigurationError as exc:
        logger.error(f"Configuration error: {exc}")
        return 1
    output_root = config_path.parent / config.output_root
    logger.info(f"Removing the output directory '{config.output_root}'...")
    try:
        clean_output_dir(output_root, config_path.parent)
    except WikiError as exc:
        logger.error(f"Error while removing the output directory: {exc}")
        return 1
    logger.info("All done")
    return 0


def cmd_new(args: argparse.Namespace) -> int:
    path = Path(args.path)
    try:
        create_new(path)
    except WikiError as exc:
        logger.error(str(exc))
        return 1
    logger.info(f"New project created at {path}")
    return 0


def cmd_add(args: argparse.Namespace) -> int:
    config_path = Path(args.config).resolve()
    try:
        config = load_config(config_path)
    except ConfigurationError as exc:
        logger.error(f"Configuration error: {exc}")
        return 1
    try:
        article = add_article(config, config_path.parent, Path(args.path))
    except WikiError as exc:
        logger.error(str(exc))
        return 1
    logger.info(f"File '{article}' created")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Builds a html wiki from markdown articles with YAML metadata blocks."
    )
    parser.add_argument(
        "--config",
        default=CONFIG_FILENAME,
        help="Path to the wiki config file (YAML/TOML/JSON).",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Only print warnings and errors.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print debug output.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser("build", help="Build the wiki project into a html site.")
    build_parser.set_defaults(func=cmd_build)

    clean_parser = subparsers.add_parser("clean", help="Remove the built html site.")
    clean_parser.set_defaults(func=cmd_clean)

    new_parser = subparsers.add_parser("new", help="Create a new example wiki project.")
    new_parser.add_argument("path", help="The name or path of the new project directory.")
    new_parser.set_defaults(func=cmd_new)

    add_parser = subparsers.add_parser("add", help="Add a new article to the articles input folder.")
    add_parser.add_argument(
        "path", help="Path of the new article, relative to the articles folder. The extension is optional."
    )
    add_parser.set_defaults(func=cmd_add)

    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.quiet)
    return args.func(args)
