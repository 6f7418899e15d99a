from __future__ import annotations

from pathlib import Path, PurePosixPath

from .content import ArticleNode
from .utils import title_case


def group_by_parent(records: list[ArticleNode], articles_base: Path) -> dict[str, list[ArticleNode]]:
    """Group article records by their directory relative to ``articles_base``.

    Keys are posix paths, ``""`` for articles directly in the base. The
    mapping keeps the order in which the directories were first seen.
    """
    pending: dict[str, list[ArticleNode]] = {}
    for record in records:
        rel = record.source_path.relative_to(articles_base).parent
        key = "" if rel == Path(".") else rel.as_posix()
        pending.setdefault(key, []).append(record)
    return pending


def find_or_create(node: ArticleNode, segment: str) -> ArticleNode:
    child = node.get(segment)
    if child is None:
        child = ArticleNode(id=segment, title=title_case(segment))
        node.children.append(child)
    return child


def attach(node: ArticleNode, record: ArticleNode) -> None:
    existing = node.get(record.id)
    if existing is not None:
        existing.update_from(record)
    else:
        node.children.append(record)


def assemble(index_record: ArticleNode, pending: dict[str, list[ArticleNode]]) -> ArticleNode:
    """Build the navigation tree rooted at the index article.

    Directories without an article of their own get a synthetic category
    node titled after the directory name. A record whose id matches an
    existing child replaces that child's metadata but keeps its children.
    ``pending`` is drained.
    """
    root = index_record
    while pending:
        parent, records = next(iter(pending.items()))
        del pending[parent]

        path = PurePosixPath(parent)
        assert not path.is_absolute() and ".." not in path.parts, f"bad parent path '{parent}'"

        node = root
        for segment in path.parts:
            if segment == ".":
                continue
            node = find_or_create(node, segment)
        for record in records:
            attach(node, record)
    return root


def count_articles(root: ArticleNode) -> int:
    return sum(1 for node, _ in root.walk() if not node.is_synthetic)
