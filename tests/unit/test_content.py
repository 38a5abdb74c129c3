"""Tests for HTML extraction helpers."""

import pytest
from selectolax.parser import HTMLParser

from lodecore.content import (
    clean_text,
    discover_articles,
    extract_fetch_payload,
    extract_hinted_items,
    extract_page_metadata,
    extract_structured_data,
)
from lodecore.protocols import TargetHints

PAGE = """
<html>
<head>
  <title>  Research   Blog </title>
  <meta name="description" content="Posts from the lab">
  <meta name="author" content="Lab Team">
  <meta property="og:title" content="Research Blog OG">
  <meta name="twitter:card" content="summary">
  <link rel="canonical" href="https://lab.example/blog">
  <script type="application/ld+json">{"@type": "Blog", "name": "Lab"}</script>
  <script type="application/ld+json">{not json</script>
</head>
<body>
  <div class="post">
    <h2>Scaling laws revisited</h2>
    <p>We look again at compute-optimal training.</p>
    <a class="more" href="/posts/scaling">Read</a>
  </div>
  <div class="post">
    <h2>Untitled draft without a body</h2>
  </div>
</body>
</html>
"""

HINTS = TargetHints(item_selector=".post", title_selector="h2", content_selector="p", link_selector="a.more")


@pytest.mark.unit
class TestPageExtraction:
    def test_clean_text(self):
        assert clean_text("  a \n\t b  ") == "a b"
        assert clean_text(None) == ""

    def test_metadata(self):
        metadata = extract_page_metadata(HTMLParser(PAGE))
        assert metadata["title"] == "Research Blog"
        assert metadata["description"] == "Posts from the lab"
        assert metadata["author"] == "Lab Team"
        assert metadata["keywords"] is None
        assert metadata["canonical"] == "https://lab.example/blog"

    def test_structured_data_skips_malformed_blocks(self):
        assert extract_structured_data(HTMLParser(PAGE)) == [{"@type": "Blog", "name": "Lab"}]

    def test_hinted_items_need_title_and_content(self):
        items = extract_hinted_items(HTMLParser(PAGE), HINTS, "https://lab.example/blog")
        assert items == [
            {
                "title": "Scaling laws revisited",
                "content": "We look again at compute-optimal training.",
                "url": "https://lab.example/posts/scaling",
            }
        ]

    def test_hinted_items_require_selectors(self):
        assert extract_hinted_items(HTMLParser(PAGE), TargetHints(), "https://lab.example") == []

    def test_fetch_payload(self):
        payload = extract_fetch_payload(PAGE, "https://lab.example/blog", HINTS, max_chars=100)
        assert payload["title"] == "Research Blog"
        assert payload["open_graph"] == {"title": "Research Blog OG"}
        assert payload["twitter"] == {"card": "summary"}
        assert len(payload["items"]) == 1
        assert len(payload["html"]) == 100


LISTING = """
<html><body>
<ul>
  <li><a href="/news/one">Introducing the new model family</a>
      Published 2025-03-14 with a long description of the release.</li>
  <li><a href="/news/two">Safety evaluations update</a>
      Notes from the evaluation team 2025/02/01 and what comes next.</li>
  <li><a href="/news/one">Introducing the new model family</a>
      Duplicate link that should be dropped from the results list.</li>
  <li><a href="/short">Hi</a> This block has plenty of text but a tiny link label.</li>
  <li><a href="/tiny">Too short block</a></li>
  <li><a href="#top">Back to the top of this page, which is not an article</a></li>
</ul>
</body></html>
"""


@pytest.mark.unit
class TestDiscoverArticles:
    def test_finds_article_links(self):
        articles = discover_articles(LISTING, "https://lab.example/news")
        by_url = {a["url"]: a for a in articles}

        assert set(by_url) == {"https://lab.example/news/one", "https://lab.example/news/two"}
        assert by_url["https://lab.example/news/one"]["title"] == "Introducing the new model family"
        assert by_url["https://lab.example/news/one"]["published"] == "2025-03-14"
        assert by_url["https://lab.example/news/two"]["published"] == "2025/02/01"

    def test_limit_and_content_length(self):
        blocks = "".join(
            f'<article><a href="/p/{i}">Article number {i}</a> {"word " * 200}</article>' for i in range(30)
        )
        articles = discover_articles(f"<html><body>{blocks}</body></html>", "https://lab.example")
        assert len(articles) == 20
        assert all(len(a["content"]) <= 500 for a in articles)

    def test_auto_discover_only_when_requested(self):
        payload = extract_fetch_payload(LISTING, "https://lab.example/news", TargetHints(), 1000)
        assert payload["items"] == []

        payload = extract_fetch_payload(LISTING, "https://lab.example/news", TargetHints(auto_discover=True), 1000)
        assert len(payload["items"]) == 2
