from __future__ import annotations

import re

import pytest

from app.core.errors import FeedParseError
from services.feed_extractor import (
    SOURCE_PLACEHOLDER,
    clean_snippet,
    decode_entities,
    iter_feed_items,
)

GOOGLE_NEWS_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">
  <channel>
    <title>"trânsito" - Google Notícias</title>
    <item>
      <title>Acidente fecha pista da Linha Amarela &amp;amp; causa retenção - g1</title>
      <link>https://news.google.com/rss/articles/CBMiAAA?oc=5</link>
      <pubDate>Mon, 19 Oct 2026 10:30:00 GMT</pubDate>
      <description>&lt;a href="https://news.google.com/rss/articles/CBMiAAA?oc=5" target="_blank"&gt;Acidente fecha pista&lt;/a&gt;&amp;nbsp;&amp;nbsp;&lt;font color="#6f6f6f"&gt;g1&lt;/font&gt; veja https://g1.globo.com/rj</description>
      <source url="https://g1.globo.com">g1</source>
    </item>
    <item>
      <title>Chuva deixa trânsito lento na Avenida Brasil</title>
      <link>https://odia.ig.com.br/rio-de-janeiro/2026/10/transito.html</link>
      <pubDate>not a date</pubDate>
    </item>
    <item>
      <link>https://example.com/sem-titulo</link>
      <description>Item sem título</description>
    </item>
  </channel>
</rss>
"""


def _rss_with_items(count: int) -> str:
    items = "".join(
        f"<item><title>Notícia {i}</title><link>https://example.com/{i}</link></item>"
        for i in range(count)
    )
    return f'<rss version="2.0"><channel><title>t</title>{items}</channel></rss>'


def test_google_news_item_is_normalized():
    items = list(iter_feed_items(GOOGLE_NEWS_RSS, limit=10))

    first = items[0]
    assert first.title == "Acidente fecha pista da Linha Amarela & causa retenção - g1"
    assert first.url == "https://news.google.com/rss/articles/CBMiAAA?oc=5"
    assert first.source == "g1"
    assert first.source_url == "https://g1.globo.com"
    assert first.published_at is not None
    assert first.published_at.tzinfo is not None
    assert (first.published_at.year, first.published_at.hour) == (2026, 10)
    assert first.snippet == "Acidente fecha pista g1 veja"
    assert first.publisher_url == ""
    assert first.publisher_domain == ""


def test_missing_fields_degrade_without_errors():
    items = list(iter_feed_items(GOOGLE_NEWS_RSS, limit=10))

    second = items[1]
    assert second.published_at is None
    assert second.snippet == ""
    assert second.source == SOURCE_PLACEHOLDER
    assert second.source_url == ""


def test_items_without_title_are_skipped():
    items = list(iter_feed_items(GOOGLE_NEWS_RSS, limit=10))

    assert len(items) == 2
    assert all(item.title and item.url for item in items)


def test_output_is_capped_and_keeps_feed_order():
    items = list(iter_feed_items(_rss_with_items(30), limit=10))

    assert len(items) == 10
    assert [item.url for item in items] == [f"https://example.com/{i}" for i in range(10)]


def test_iteration_is_lazy_and_restartable():
    text = _rss_with_items(3)
    gen = iter_feed_items(text, limit=5)

    assert next(gen).title == "Notícia 0"
    assert [i.title for i in iter_feed_items(text, limit=5)] == ["Notícia 0", "Notícia 1", "Notícia 2"]


def test_accepts_bytes():
    items = list(iter_feed_items(_rss_with_items(2).encode("utf-8"), limit=5))
    assert len(items) == 2


def test_empty_channel_yields_nothing():
    assert list(iter_feed_items('<rss version="2.0"><channel><title>x</title></channel></rss>')) == []


def test_non_feed_body_raises_parse_error():
    with pytest.raises(FeedParseError):
        list(iter_feed_items("upstream exploded, sorry"))


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Rock &amp; Rio", "Rock & Rio"),
        ("Rock &amp;amp; Rio", "Rock & Rio"),
        ("&#233;&#xE9;&eacute;", "ééé"),
        ("already plain", "already plain"),
    ],
)
def test_decode_entities(raw, expected):
    assert decode_entities(raw) == expected


def test_decode_entities_is_idempotent_after_second_pass():
    once = decode_entities("S&amp;amp;P &amp;lt;500&amp;gt;")
    assert decode_entities(once) == once


def test_decode_entities_triple_encoded_reaches_plain_text():
    once = decode_entities("Rock &amp;amp;amp; Rio")

    assert once == "Rock & Rio"
    assert decode_entities(once) == once


def test_clean_snippet_has_no_markup_or_urls():
    snippet = clean_snippet(
        "&lt;p&gt;Obras na &lt;b&gt;Ponte&lt;/b&gt;&lt;/p&gt; mais em http://example.com/a?b=1 "
        "e HTTPS://EXAMPLE.com\n\n  fim"
    )

    assert snippet == "Obras na Ponte mais em e fim"
    assert not re.search(r"<[^>]*>", snippet)
    assert not re.search(r"https?://", snippet, re.IGNORECASE)
