from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from .errors import ConfigurationError, WalkError

ARTICLES = "articles"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryGlob:
    """A named set of glob patterns anchored to ``base``.

    ``output_dir`` is relative to the output root.
    """

    name: str
    base: Path
    patterns: tuple[str, ...]
    output_dir: Path

    def output_path(self, path: Path, output_root: Path) -> Path:
        return output_root / self.output_dir / path.relative_to(self.base)


@dataclass
class Classification:
    articles: list[Path] = field(default_factory=list)
    assets: dict[str, list[Path]] = field(default_factory=dict)

    def asset_count(self) -> int:
        return sum(len(paths) for paths in self.assets.values())


def split_alternatives(text: str) -> list[str]:
    options = []
    depth = 0
    current = ""
    for char in text:
        if char == "," and depth == 0:
            options.append(current)
            current = ""
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        current += char
    options.append(current)
    return options


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternation groups into plain glob patterns.

    ``"**/*.{md,markdown}"`` becomes ``["**/*.md", "**/*.markdown"]``. A group
    without a comma is kept as literal text.
    """
    depth = 0
    start = -1
    for index, char in enumerate(pattern):
        if char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}":
            if depth == 0:
                raise ValueError(f"unmatched '}}' in pattern '{pattern}'")
            depth -= 1
            if depth == 0:
                prefix = pattern[:start]
                inner = pattern[start + 1 : index]
                suffix = pattern[index + 1 :]
                options = split_alternatives(inner)
                if len(options) < 2:
                    return [f"{prefix}{{{inner}}}{rest}" for rest in expand_braces(suffix)]
                expanded = []
                for option in options:
                    expanded.extend(expand_braces(prefix + option + suffix))
                return expanded
    if depth:
        raise ValueError(f"unmatched '{{' in pattern '{pattern}'")
    return [pattern]


def is_excluded(path: Path, excluded: Iterable[Path]) -> bool:
    resolved = path.resolve()
    for item in excluded:
        if resolved == item or resolved.is_relative_to(item):
            return True
    return False


def match_category(category: CategoryGlob, excluded: Iterable[Path] = ()) -> list[Path]:
    """Return the files under the category's base matching any of its patterns."""
    if not category.base.is_dir():
        raise WalkError(
            f"The base directory '{category.base}' of the '{category.name}' inputs does not exist",
            category.name,
        )
    excluded = [path.resolve() for path in excluded]

    patterns = []
    for pattern in category.patterns:
        try:
            patterns.extend(expand_braces(pattern))
        except ValueError as exc:
            raise ConfigurationError(f"Invalid glob for the '{category.name}' inputs: {exc}") from exc

    found = {}
    for pattern in patterns:
        try:
            matches = list(category.base.glob(pattern))
        except (ValueError, NotImplementedError) as exc:
            raise ConfigurationError(
                f"Invalid glob '{pattern}' for the '{category.name}' inputs: {exc}"
            ) from exc
        except OSError as exc:
            raise WalkError(
                f"Error while walking the '{category.name}' inputs in '{category.base}': {exc}",
                category.name,
            ) from exc
        for path in matches:
            if path.is_file() and not is_excluded(path, excluded):
                found[path.as_posix()] = path
    return [found[key] for key in sorted(found)]


def classify(categories: Iterable[CategoryGlob], excluded: Iterable[Path] = ()) -> Classification:
    """Match every category and make sure no file lands in two of them."""
    excluded = list(excluded)
    result = Classification()
    owners: dict[Path, str] = {}
    for category in categories:
        paths = match_category(category, excluded)
        for path in paths:
            key = path.resolve()
            owner = owners.get(key)
            if owner is not None:
                raise ConfigurationError(
                    f"The file '{path}' is matched by both the '{owner}' and the "
                    f"'{category.name}' inputs"
                )
            owners[key] = category.name
        logger.debug("Matched %d file(s) for the '%s' inputs", len(paths), category.name)
        if category.name == ARTICLES:
            result.articles = paths
        else:
            result.assets[category.name] = paths
    return result
