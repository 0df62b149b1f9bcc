"""RSS feed of one edition's analyzed articles."""

from datetime import date, datetime
from email.utils import formatdate
from typing import List
from xml.sax.saxutils import escape

from policybrief.models import Article, ArticleStatus, Edition


def generate_edition_feed(edition: Edition, link: str = "https://example.com/policybrief") -> str:
    """
    Generate an RSS 2.0 feed from an edition.

    Only published articles with an analysis are included, in ordinal order.

    Returns:
        RSS feed as XML string
    """
    items = [
        a for a in edition.articles
        if a.status == ArticleStatus.PUBLISHED and a.analysis and a.ordinal is not None
    ]
    items.sort(key=lambda a: a.ordinal)

    rss_parts = [
        '<?xml version="1.0" encoding="UTF-8" ?>',
        '<rss version="2.0">',
        '<channel>',
        f'<title>Policy Brief #{edition.issue_number} - {edition.edition_date.isoformat()}</title>',
        f'<link>{escape(link)}</link>',
        f'<description>{escape(edition.featured_headline or "Daily policy impact analysis")}</description>',
        '<language>en-us</language>',
        f'<lastBuildDate>{formatdate(datetime.now().timestamp())}</lastBuildDate>',
    ]

    for article in items:
        rss_parts.extend(_article_to_rss(article))

    rss_parts.extend([
        '</channel>',
        '</rss>'
    ])

    return '\n'.join(rss_parts)


def _article_to_rss(article: Article) -> List[str]:
    paragraphs = ''.join(
        f"<p>{escape(p)}</p>" for p in article.analysis.split("\n\n") if p.strip()
    )
    pub_date = ""
    if article.published:
        pub_date = f"<pubDate>{formatdate(article.published.timestamp())}</pubDate>"

    return [
        '<item>',
        f'<title>{article.ordinal}. {escape(article.title)}</title>',
        f'<link>{escape(article.url)}</link>',
        f'<description><![CDATA[{paragraphs}]]></description>',
        f'<source url="{escape(article.url)}">{escape(article.source)}</source>',
        f'<guid isPermaLink="false">policybrief-{article.id}</guid>',
        pub_date,
        '</item>',
    ]


def save_edition_feed(db, edition_date: date, output_path: str) -> int:
    """
    Write the feed for an edition to a file.

    Returns:
        Number of items written, 0 when no edition exists for the date.
    """
    edition = db.find_by_date(edition_date)
    if edition is None:
        return 0

    rss_xml = generate_edition_feed(edition)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(rss_xml)

    return rss_xml.count('<item>')
