"""Tests for the build pipeline and the CLI commands."""

from pathlib import Path

import pytest
import yaml

from wikigen.cli import add_article, build_site, create_new, main
from wikigen.config import CONFIG_FILENAME, DirGlob, load_config
from wikigen.errors import ConfigurationError, MissingTitle, RenderError


class TestBuildSite:
    def test_end_to_end_tree_and_paths(self, project, wiki_config, renderer):
        """index.md and articles/news/item.md give Home -> News -> Item."""
        result = build_site(wiki_config, project, renderer=renderer)

        tree = result.tree
        assert tree.title == "Home"
        assert [child.id for child in tree.children] == ["news"]
        news = tree["news"]
        assert news.title == "News"
        assert news.is_synthetic
        assert [child.title for child in news.children] == ["Item"]
        assert result.processed == [
            project / "output" / "index.html",
            project / "output" / "articles" / "news" / "item.html",
        ]
        assert (project / "output" / "index.html").exists()
        assert (project / "output" / "articles" / "news" / "item.html").exists()

    def test_assets_and_stylesheet_are_copied(self, project, wiki_config, renderer):
        result = build_site(wiki_config, project, renderer=renderer)

        assert (project / "output" / "img" / "logo.png").read_bytes() == b"\x89PNG"
        assert (project / "output" / "style.css").exists()
        assert result.copied == 2

    def test_relative_roots(self, project, wiki_config, renderer):
        build_site(wiki_config, project, renderer=renderer)

        assert [call["root_url"] for call in renderer.calls] == ["", "../../"]

    def test_stale_outputs_are_removed(self, project, wiki_config, renderer):
        old = project / "output" / "old" / "gone.html"
        old.parent.mkdir(parents=True)
        old.write_text("stale", encoding="utf-8")
        (project / "output" / "stale.html").write_text("stale", encoding="utf-8")

        result = build_site(wiki_config, project, renderer=renderer)

        assert sorted(path.name for path in result.deleted) == ["gone.html", "stale.html"]
        assert not (project / "output" / "old").exists()
        assert (project / "output" / "index.html").exists()

    def test_removed_article_is_cleaned_on_rebuild(self, project, wiki_config, renderer, article_writer):
        extra = article_writer(project / "articles" / "temp.md", "Temp")
        build_site(wiki_config, project, renderer=renderer)
        assert (project / "output" / "articles" / "temp.html").exists()

        extra.unlink()
        build_site(wiki_config, project, renderer=renderer)

        assert not (project / "output" / "articles" / "temp.html").exists()

    def test_category_article_upgrades_synthetic_node(self, project, wiki_config, renderer, article_writer):
        article_writer(project / "articles" / "news.md", "All the News")

        result = build_site(wiki_config, project, renderer=renderer)

        news = result.tree["news"]
        assert news.title == "All the News"
        assert [child.id for child in news.children] == ["item"]

    def test_output_dir_is_not_walked(self, project, wiki_config, renderer, article_writer):
        wiki_config.articles = DirGlob(Path("."), ("**/*.md",))
        article_writer(project / "output" / "leftover.md", "Leftover")

        result = build_site(wiki_config, project, renderer=renderer)

        ids = [node.id for node, _ in result.tree.walk()]
        assert "leftover" not in ids
        assert "index" in ids

    def test_malformed_article_aborts_before_rendering(self, project, wiki_config, renderer):
        (project / "articles" / "bad.md").write_text("---\nkeywords: []\n---\n", encoding="utf-8")

        with pytest.raises(MissingTitle):
            build_site(wiki_config, project, renderer=renderer)

        assert renderer.calls == []

    def test_render_failure_is_fatal(self, project, wiki_config, failing_renderer):
        stale = project / "output" / "stale.html"
        stale.parent.mkdir()
        stale.write_text("stale", encoding="utf-8")

        with pytest.raises(RenderError):
            build_site(wiki_config, project, renderer=failing_renderer)

        assert stale.exists()

    def test_missing_index(self, project, wiki_config, renderer):
        (project / "index.md").unlink()

        with pytest.raises(ConfigurationError, match="index file"):
            build_site(wiki_config, project, renderer=renderer)

    def test_ambiguous_asset_fails_before_output(self, project, wiki_config, renderer):
        wiki_config.others["media"] = DirGlob(project / "images", ("*.png",))
        wiki_config.output_others["media"] = project / "media"

        with pytest.raises(ConfigurationError, match="matched by both"):
            build_site(wiki_config, project, renderer=renderer)

        assert not (project / "output").exists()


class TestCommands:
    def test_new_then_build(self, tmp_path):
        target = tmp_path / "mywiki"

        assert main(["new", str(target)]) == 0
        config_path = target / CONFIG_FILENAME
        assert load_config(config_path).name == "mywiki"
        assert (target / "articles" / "example.md").exists()
        assert ".codehilite" in (target / "style.css").read_text(encoding="utf-8")

        assert main(["--config", str(config_path), "build"]) == 0
        assert (target / "html" / "index.html").exists()
        assert (target / "html" / "articles" / "example.html").exists()
        assert (target / "html" / "scripts" / "main.js").exists()

    def test_new_refuses_existing_directory(self, tmp_path, caplog):
        assert main(["new", str(tmp_path)]) == 1
        assert "exists already" in caplog.text

    def test_clean(self, tmp_path):
        target = tmp_path / "wiki"
        create_new(target)
        config_path = target / CONFIG_FILENAME
        assert main(["--config", str(config_path), "build"]) == 0

        assert main(["--config", str(config_path), "clean"]) == 0
        assert not (target / "html").exists()

    def test_build_reports_configuration_error(self, tmp_path, caplog):
        result = main(["--config", str(tmp_path / CONFIG_FILENAME), "build"])

        assert result == 1
        assert "Configuration error" in caplog.text

    def test_build_reports_extraction_error(self, tmp_path, caplog):
        target = tmp_path / "wiki"
        create_new(target)
        (target / "articles" / "broken.md").write_text("no metadata\n", encoding="utf-8")

        result = main(["--config", str(target / CONFIG_FILENAME), "build"])

        assert result == 1
        assert "Build error" in caplog.text
        assert "broken.md" in caplog.text

    def test_add(self, tmp_path):
        target = tmp_path / "wiki"
        config = create_new(target)

        article = add_article(config, target, Path("guides/getting-started"))

        assert article == target / "articles" / "guides" / "getting-started.md"
        meta = yaml.safe_load(article.read_text(encoding="utf-8").split("---")[1])
        assert meta == {"title": "Getting-Started", "keywords": []}

    def test_add_refuses_existing(self, tmp_path, caplog):
        target = tmp_path / "wiki"
        create_new(target)

        result = main(["--config", str(target / CONFIG_FILENAME), "add", "example"])

        assert result == 1
        assert "already exists" in caplog.text

    def test_quiet_flag(self, tmp_path):
        target = tmp_path / "wiki"
        create_new(target)

        assert main(["--quiet", "--config", str(target / CONFIG_FILENAME), "build"]) == 0
