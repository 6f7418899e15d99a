from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional

import yaml

from .errors import (
    InvalidMetadataSyntax,
    MissingMetadataBlock,
    MissingTitle,
    WikiIOError,
    WrongFieldType,
)
from .utils import encode_fragment, path_to_url

# A pandoc-style YAML metadata block: opened by a `---` line at the start of
# the document or right after a blank line, closed by `---` or `...`.
FRONT_MATTER_RE = re.compile(
    r"(?:\A|\r?\n[ \t]*\r?\n)---[ \t]*\r?\n(?P<meta>.*?)^(?:---|\.\.\.)[ \t]*(?:\r?\n|\Z)",
    re.MULTILINE | re.DOTALL,
)
KNOWN_KEYS = {"title", "keywords", "id", "link-url", "link_url"}
TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class MetadataLoader(yaml.SafeLoader):
    """Safe loader that keeps bare dates such as ``2024-01-15`` as strings."""


MetadataLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


@dataclass
class ArticleNode:
    """One entry of the navigation tree.

    Nodes without a ``source_path`` are synthetic categories standing in for
    a directory that has no article of its own.
    """

    id: str
    title: str
    source_path: Optional[Path] = None
    output_path: Optional[Path] = None
    link_url: str = ""
    keywords: list[str] = field(default_factory=list)
    children: list["ArticleNode"] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_synthetic(self) -> bool:
        return self.source_path is None

    def get(self, child_id: str) -> Optional["ArticleNode"]:
        for child in self.children:
            if child.id == child_id:
                return child
        return None

    def __getitem__(self, child_id: str) -> "ArticleNode":
        child = self.get(child_id)
        if child is None:
            raise KeyError(f"Article '{self.id}' has no sub-article with the id '{child_id}'")
        return child

    def update_from(self, record: "ArticleNode") -> None:
        # the id and the already attached children stay
        self.title = record.title
        self.source_path = record.source_path
        self.output_path = record.output_path
        self.link_url = record.link_url
        self.keywords = list(record.keywords)
        self.extra = dict(record.extra)

    def walk(self, depth: int = 0) -> Iterator[tuple["ArticleNode", int]]:
        yield self, depth
        for child in self.children:
            yield from child.walk(depth + 1)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update(
            {
                "id": self.id,
                "title": self.title,
                "md_file_path": self.source_path.as_posix() if self.source_path else None,
                "html_file_path": self.output_path.as_posix() if self.output_path else None,
                "link_url": self.link_url,
                "keywords": list(self.keywords),
                "sub_articles": [child.to_dict() for child in self.children],
            }
        )
        return data


def yaml_type_name(value: object) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "a boolean"
    if isinstance(value, (int, float)):
        return "a number"
    if isinstance(value, str):
        return "a string"
    if isinstance(value, list):
        return "a sequence"
    if isinstance(value, dict):
        return "a mapping"
    return "a tagged value"


def split_front_matter(text: str) -> tuple[Optional[str], str]:
    clean_text = text.lstrip("\ufeff")
    match = FRONT_MATTER_RE.search(clean_text)
    if match is None:
        return None, clean_text
    body = clean_text[: match.start()] + "\n\n" + clean_text[match.end() :]
    return match.group("meta"), body.strip("\r\n") + "\n"


def parse_metadata(text: str, path: Path) -> dict:
    block, _ = split_front_matter(text)
    if block is None:
        raise MissingMetadataBlock(path)
    try:
        data = yaml.load(block, Loader=MetadataLoader)
    except yaml.YAMLError as exc:
        raise InvalidMetadataSyntax(path, str(exc)) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise WrongFieldType(path, "metadata", "a YAML mapping", yaml_type_name(data))
    return data


def get_keywords(meta: dict, path: Path) -> list[str]:
    value = meta.get("keywords")
    if value is None and "keywords" not in meta:
        return []
    if not isinstance(value, list):
        raise WrongFieldType(path, "keywords", "a YAML sequence", yaml_type_name(value))
    return [item for item in value if isinstance(item, str)]


def get_optional_str(meta: dict, keys: tuple[str, ...], path: Path) -> str:
    for key in keys:
        if key not in meta or meta[key] is None:
            continue
        value = meta[key]
        if not isinstance(value, str):
            raise WrongFieldType(path, key, "a YAML string", yaml_type_name(value))
        if value.strip():
            return value.strip()
    return ""


def extract_metadata(source_path: Path, output_path: Path, output_root: Path) -> ArticleNode:
    """Read the metadata block of ``source_path`` into an article record.

    The record has no children yet; ``output_path`` must lie under
    ``output_root`` so the link URL can be derived from it.
    """
    try:
        text = source_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise WikiIOError("reading the article", source_path, exc) from exc
    except UnicodeDecodeError as exc:
        raise WikiIOError("decoding the article", source_path, OSError(str(exc))) from exc

    meta = parse_metadata(text, source_path)
    if "title" not in meta:
        raise MissingTitle(source_path)
    title = meta["title"]
    if not isinstance(title, str):
        raise WrongFieldType(source_path, "title", "a YAML string", yaml_type_name(title))

    keywords = get_keywords(meta, source_path)
    article_id = get_optional_str(meta, ("id",), source_path) or source_path.stem
    link_url = get_optional_str(meta, ("link-url", "link_url"), source_path)
    if not link_url:
        link_url = encode_fragment(path_to_url(output_path.relative_to(output_root)))
    extra = {key: value for key, value in meta.items() if key not in KNOWN_KEYS}

    return ArticleNode(
        id=article_id,
        title=title,
        source_path=source_path,
        output_path=output_path,
        link_url=link_url,
        keywords=keywords,
        extra=extra,
    )
