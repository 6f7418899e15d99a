"""Tests for assembling the navigation tree."""

from pathlib import Path

import pytest

from wikigen.content import ArticleNode
from wikigen.tree import assemble, count_articles, group_by_parent

OUTPUT = Path("output")


def record(rel: str, title: str = "", article_id: str = "") -> ArticleNode:
    source = Path("articles") / rel
    output = OUTPUT / "articles" / Path(rel).with_suffix(".html")
    return ArticleNode(
        id=article_id or source.stem,
        title=title or source.stem.title(),
        source_path=source,
        output_path=output,
        link_url=output.relative_to(OUTPUT).as_posix(),
    )


def index() -> ArticleNode:
    return ArticleNode(
        id="index",
        title="Home",
        source_path=Path("index.md"),
        output_path=OUTPUT / "index.html",
        link_url="index.html",
    )


def shape(node: ArticleNode) -> tuple:
    return (node.id, node.title, tuple(shape(child) for child in node.children))


class TestGroupByParent:
    def test_groups_in_first_seen_order(self):
        records = [record("b/x.md"), record("top.md"), record("b/y.md"), record("a/z.md")]

        pending = group_by_parent(records, Path("articles"))

        assert list(pending) == ["b", "", "a"]
        assert [r.id for r in pending["b"]] == ["x", "y"]

    def test_nested_keys_use_slashes(self):
        pending = group_by_parent([record("a/b/c.md")], Path("articles"))

        assert list(pending) == ["a/b"]


class TestAssemble:
    def test_synthetic_category_for_directory(self):
        """index.md plus articles/news/item.md yields Home -> News -> Item."""
        pending = group_by_parent([record("news/item.md", "Item")], Path("articles"))

        root = assemble(index(), pending)

        assert shape(root) == ("index", "Home", (("news", "News", (("item", "Item", ()),)),))
        news = root["news"]
        assert news.is_synthetic
        assert news.output_path is None
        assert news.link_url == ""
        assert root["news"]["item"].output_path == OUTPUT / "articles" / "news" / "item.html"

    def test_pending_map_is_drained(self):
        pending = group_by_parent([record("a.md")], Path("articles"))

        assemble(index(), pending)

        assert pending == {}

    def test_real_record_upgrades_synthetic_node(self):
        """A later record for a category keeps the children attached before it."""
        pending = {
            "a": [record("a/b.md", "B")],
            "": [record("a.md", "Real A")],
        }

        root = assemble(index(), pending)

        node = root["a"]
        assert node.title == "Real A"
        assert not node.is_synthetic
        assert node.source_path == Path("articles/a.md")
        assert [child.id for child in node.children] == ["b"]
        assert len(root.children) == 1

    def test_record_before_its_directory(self):
        pending = {
            "": [record("a.md", "Real A")],
            "a": [record("a/b.md", "B")],
        }

        root = assemble(index(), pending)

        assert shape(root["a"]) == ("a", "Real A", (("b", "B", ()),))
        assert len(root.children) == 1

    def test_duplicate_id_updates_instead_of_inserting(self):
        pending = {"": [record("x.md", "First", "dup"), record("y.md", "Second", "dup")]}

        root = assemble(index(), pending)

        assert [child.title for child in root.children] == ["Second"]

    def test_deep_paths_create_every_level(self):
        pending = group_by_parent([record("one/two/three/leaf.md")], Path("articles"))

        root = assemble(index(), pending)

        leaf = root["one"]["two"]["three"]["leaf"]
        assert leaf.title == "Leaf"
        assert root["one"]["two"].title == "Two"

    def test_order_is_insertion_order(self):
        records = [record("zeta/a.md"), record("alpha/b.md"), record("top.md")]

        root = assemble(index(), group_by_parent(records, Path("articles")))

        assert [child.id for child in root.children] == ["zeta", "alpha", "top"]

    def test_assembly_is_deterministic(self):
        def records():
            return [record("b/x.md"), record("a.md"), record("a/y.md"), record("b/c/z.md")]

        first = assemble(index(), group_by_parent(records(), Path("articles")))
        second = assemble(index(), group_by_parent(records(), Path("articles")))

        assert shape(first) == shape(second)

    def test_parent_outside_base_is_rejected(self):
        with pytest.raises(AssertionError):
            assemble(index(), {"../escape": [record("x.md")]})

    def test_count_articles_skips_categories(self):
        root = assemble(index(), group_by_parent([record("news/item.md")], Path("articles")))

        assert count_articles(root) == 2
