from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from .errors import ConfigurationError
from .utils import parse_bool, parse_int
from .walker import ARTICLES, CategoryGlob

try:
    import tomllib as toml
except ImportError:
    try:
        import tomli as toml
    except ImportError:  # pragma: no cover - optional dependency
        toml = None

CONFIG_FILENAME = "wiki.yaml"
RENDERERS = {"markdown", "pandoc"}
MATH_ENGINES = {"mathjax", "mathml", "webtex", "katex", "gladtex"}
RESERVED_INPUTS = {"index", "style", ARTICLES}
RESERVED_OUTPUTS = {"root", "style", ARTICLES}


@dataclass(frozen=True)
class DirGlob:
    base: Path
    patterns: tuple[str, ...]


@dataclass
class WikiConfig:
    name: str
    index: Path = Path("index.md")
    style: Path = Path("style.css")
    articles: DirGlob = DirGlob(Path(ARTICLES), ("**/*.{md,markdown}",))
    others: dict[str, DirGlob] = field(
        default_factory=lambda: {"scripts": DirGlob(Path("scripts"), ("**/*.js",))}
    )
    output_root: Path = Path("html")
    output_style: Path = Path("style.css")
    output_articles: Path = Path(ARTICLES)
    output_others: dict[str, Path] = field(default_factory=lambda: {"scripts": Path("scripts")})
    sub_articles_title: str = "Sub-Articles"
    toc_title: str = "Table of Contents"
    toc_depth: int = 3
    renderer: str = "markdown"
    math_renderer: Optional[tuple[str, Optional[str]]] = None
    pandoc_template: Optional[Path] = None
    script: str = "scripts/main.js"
    debug_pandoc_cmd: bool = False

    def validate(self) -> None:
        if not self.name:
            raise ConfigurationError(f"Name of the project cannot be empty in `{CONFIG_FILENAME}`")
        if not self.sub_articles_title:
            raise ConfigurationError(f"`sub_articles_title` cannot be empty in `{CONFIG_FILENAME}`")
        if not self.toc_title:
            raise ConfigurationError(f"`toc_title` cannot be empty in `{CONFIG_FILENAME}`")
        if self.toc_depth < 1:
            raise ConfigurationError(f"`toc_depth` must be at least 1 in `{CONFIG_FILENAME}`")
        if not self.index.name:
            raise ConfigurationError(f"`inputs.index` must have a name in `{CONFIG_FILENAME}`")
        if not self.output_root.name:
            raise ConfigurationError(f"`outputs.root` must have a name in `{CONFIG_FILENAME}`")
        if self.renderer not in RENDERERS:
            raise ConfigurationError(
                f"Unknown renderer '{self.renderer}' in `{CONFIG_FILENAME}`, "
                f"expected one of: {', '.join(sorted(RENDERERS))}"
            )
        if set(self.others) != set(self.output_others):
            raise ConfigurationError(f"The inputs must match the outputs in `{CONFIG_FILENAME}`")

    def categories(self, project_root: Path = Path(".")) -> list[CategoryGlob]:
        """Return the article category followed by the asset categories by name."""
        result = [
            CategoryGlob(ARTICLES, project_root / self.articles.base, self.articles.patterns, self.output_articles)
        ]
        for name in sorted(self.others):
            glob = self.others[name]
            result.append(CategoryGlob(name, project_root / glob.base, glob.patterns, self.output_others[name]))
        return result

    def ensure_dirs(self, project_root: Path = Path(".")) -> None:
        for glob in [self.articles, *self.others.values()]:
            (project_root / glob.base).mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> dict:
        inputs = {
            "index": self.index.as_posix(),
            "style": self.style.as_posix(),
            ARTICLES: dir_glob_to_dict(self.articles),
        }
        outputs = {
            "root": self.output_root.as_posix(),
            "style": self.output_style.as_posix(),
            ARTICLES: self.output_articles.as_posix(),
        }
        for name in sorted(self.others):
            inputs[name] = dir_glob_to_dict(self.others[name])
            outputs[name] = self.output_others[name].as_posix()
        data = {
            "name": self.name,
            "renderer": self.renderer,
            "sub_articles_title": self.sub_articles_title,
            "toc_title": self.toc_title,
            "toc_depth": self.toc_depth,
            "script": self.script,
            "inputs": inputs,
            "outputs": outputs,
        }
        if self.math_renderer is not None:
            engine, url = self.math_renderer
            data["math_renderer"] = {"engine": engine, "url": url}
        if self.pandoc_template is not None:
            data["pandoc_template"] = self.pandoc_template.as_posix()
        if self.debug_pandoc_cmd:
            data["debug_pandoc_cmd"] = True
        return data


def dir_glob_to_dict(glob: DirGlob) -> dict:
    return {"base": glob.base.as_posix(), "patterns": list(glob.patterns)}


def read_config_file(path: Path) -> dict:
    if not path.exists():
        raise ConfigurationError(f"No configuration file '{path}' found!")
    suffix = path.suffix.lower()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Error while reading the configuration file '{path}': {exc}") from exc
    if suffix == ".toml":
        if toml is None:
            raise ConfigurationError("TOML config requires tomllib (Python 3.11+) or tomli.")
        try:
            data = toml.loads(text)
        except Exception as exc:  # pragma: no cover - depends on parser
            raise ConfigurationError(f"Invalid TOML in config file {path}: {exc}") from exc
    elif suffix == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Invalid JSON in config file {path}: {exc}") from exc
    else:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc
        if data is None:
            data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config must be a mapping: {path}")
    return data


def parse_path(value: object, key: str) -> Path:
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"`{key}` must be a non-empty path in `{CONFIG_FILENAME}`")
    return Path(value.strip())


def parse_dir_glob(value: object, key: str) -> DirGlob:
    if not isinstance(value, dict):
        raise ConfigurationError(f"`{key}` must be a mapping with `base` and `patterns` in `{CONFIG_FILENAME}`")
    base = parse_path(value.get("base"), f"{key}.base")
    patterns = value.get("patterns")
    if isinstance(patterns, str):
        patterns = [patterns]
    if not isinstance(patterns, list) or not patterns or not all(isinstance(p, str) and p for p in patterns):
        raise ConfigurationError(f"`{key}.patterns` must be a list of glob patterns in `{CONFIG_FILENAME}`")
    return DirGlob(base, tuple(patterns))


def parse_math(value: object) -> Optional[tuple[str, Optional[str]]]:
    if value is None:
        return None
    if isinstance(value, str):
        value = {"engine": value}
    if not isinstance(value, dict):
        raise ConfigurationError(f"`math_renderer` must be a mapping in `{CONFIG_FILENAME}`")
    engine = str(value.get("engine", "")).strip().lower()
    if engine not in MATH_ENGINES:
        raise ConfigurationError(
            f"Unknown math engine '{engine}' in `{CONFIG_FILENAME}`, "
            f"expected one of: {', '.join(sorted(MATH_ENGINES))}"
        )
    url = value.get("url")
    return engine, str(url) if url else None


def config_from_dict(data: dict) -> WikiConfig:
    defaults = WikiConfig(name="")
    inputs = data.get("inputs") or {}
    outputs = data.get("outputs") or {}
    if not isinstance(inputs, dict) or not isinstance(outputs, dict):
        raise ConfigurationError(f"`inputs` and `outputs` must be mappings in `{CONFIG_FILENAME}`")

    others = {}
    for key, value in inputs.items():
        if key not in RESERVED_INPUTS:
            others[str(key)] = parse_dir_glob(value, f"inputs.{key}")
    output_others = {}
    for key, value in outputs.items():
        if key not in RESERVED_OUTPUTS:
            output_others[str(key)] = parse_path(value, f"outputs.{key}")
    if "inputs" not in data and "outputs" not in data:
        others, output_others = defaults.others, defaults.output_others

    template = data.get("pandoc_template")
    config = WikiConfig(
        name=str(data.get("name") or "").strip(),
        index=parse_path(inputs.get("index", "index.md"), "inputs.index"),
        style=parse_path(inputs.get("style", "style.css"), "inputs.style"),
        articles=parse_dir_glob(inputs[ARTICLES], f"inputs.{ARTICLES}") if ARTICLES in inputs else defaults.articles,
        others=others,
        output_root=parse_path(outputs.get("root", "html"), "outputs.root"),
        output_style=parse_path(outputs.get("style", "style.css"), "outputs.style"),
        output_articles=parse_path(outputs.get(ARTICLES, ARTICLES), f"outputs.{ARTICLES}"),
        output_others=output_others,
        sub_articles_title=str(data.get("sub_articles_title", defaults.sub_articles_title) or "").strip(),
        toc_title=str(data.get("toc_title", defaults.toc_title) or "").strip(),
        toc_depth=parse_int(data.get("toc_depth"), defaults.toc_depth),
        renderer=str(data.get("renderer", defaults.renderer) or "").strip().lower(),
        math_renderer=parse_math(data.get("math_renderer")),
        pandoc_template=parse_path(template, "pandoc_template") if template is not None else None,
        script=str(data.get("script", defaults.script) or "").strip(),
        debug_pandoc_cmd=parse_bool(data.get("debug_pandoc_cmd")),
    )
    config.validate()
    return config


def load_config(path: Path) -> WikiConfig:
    return config_from_dict(read_config_file(path))


def default_config(name: str) -> WikiConfig:
    return WikiConfig(name=name)
