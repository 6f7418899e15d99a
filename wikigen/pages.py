from __future__ import annotations

import html
from urllib.parse import urlsplit


def resolve_link(link_url: str, root: str) -> str:
    """Prefix ``root`` to relative links; absolute URLs and anchors are kept as given."""
    if link_url.startswith(("/", "#")) or urlsplit(link_url).scheme:
        return link_url
    return root + link_url


def article_link(article: dict, root: str) -> str:
    title = html.escape(article.get("title") or article.get("id") or "")
    link_url = article.get("link_url") or ""
    if not link_url:
        return f'<span class="category">{title}</span>'
    return f'<a href="{html.escape(resolve_link(link_url, root))}">{title}</a>'


def build_sidebar_items(articles: list[dict], root: str, current_id: str) -> str:
    items = []
    for article in articles:
        classes = ["sidebar-item"]
        if article.get("id") == current_id and article.get("link_url"):
            classes.append("is-current")
        children = article.get("sub_articles") or []
        nested = ""
        if children:
            nested = f'<ul class="sidebar-list">{build_sidebar_items(children, root, current_id)}</ul>'
        items.append(f'<li class="{" ".join(classes)}">{article_link(article, root)}{nested}</li>')
    return "".join(items)


def build_sidebar(tree: dict, root: str, current_id: str = "") -> str:
    """Render the whole navigation tree; ``tree`` is the root article's dict."""
    home = article_link(tree, root)
    children = tree.get("sub_articles") or []
    items = build_sidebar_items(children, root, current_id)
    return (
        '<nav class="sidebar">'
        f'<div class="sidebar-home">{home}</div>'
        f'<ul class="sidebar-list">{items}</ul>'
        "</nav>"
    )


def build_sub_articles(children: list[dict], root: str, heading: str) -> str:
    if not children:
        return ""
    rows = []
    for child in children:
        keywords = child.get("keywords") or []
        tags = ""
        if keywords:
            tags = '<span class="keywords">' + ", ".join(html.escape(k) for k in keywords) + "</span>"
        rows.append(f"<li>{article_link(child, root)}{tags}</li>")
    return (
        '<section class="sub-articles">'
        f"<h2>{html.escape(heading)}</h2>"
        f'<ul>{"".join(rows)}</ul>'
        "</section>"
    )


def build_toc(toc_html: str, heading: str) -> str:
    if not toc_html or "<li" not in toc_html:
        return ""
    return f'<section class="toc"><h2>{html.escape(heading)}</h2>{toc_html}</section>'


def build_keywords_meta(keywords: list[str]) -> str:
    if not keywords:
        return ""
    return f'<meta name="keywords" content="{html.escape(", ".join(keywords))}">'
