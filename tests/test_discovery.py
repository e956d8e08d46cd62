import pytest
from bs4 import BeautifulSoup

from conftest import FakeFetcher
from pipelines.discovery import (
    SiteDiscovery,
    UNKNOWN_PRODUCT,
    extract_internal_links,
    extract_nav_links,
    extract_product_name,
)

HOMEPAGE = """
<html>
<head><title>Acme | Build faster</title></head>
<body>
  <header>
    <a href="/docs">Docs</a>
    <a href="/pricing">Pricing</a>
    <a href="https://help.acme.test/support">Support</a>
  </header>
  <nav><a href="/guides/intro">Guides</a><a href="#top">Top</a></nav>
  <main>
    <a href="/about">About</a>
    <a href="/docs#install">Install</a>
    <a href="mailto:hi@acme.test">Mail</a>
    <a href="https://other.test/docs">Elsewhere</a>
  </main>
</body>
</html>
"""


def _soup(html):
    return BeautifulSoup(html, "html.parser")


class TestProductName:

    def test_title_before_separator(self):
        assert extract_product_name(_soup(HOMEPAGE)) == "Acme"

    def test_falls_back_to_h1(self):
        assert extract_product_name(_soup("<html><body><h1>Widget</h1></body></html>")) == "Widget"

    def test_unknown_when_nothing_found(self):
        assert extract_product_name(_soup("<html><body><p>hi</p></body></html>")) == UNKNOWN_PRODUCT


def test_internal_links_same_host_only():
    links = extract_internal_links(_soup(HOMEPAGE), "https://acme.test")
    assert links == [
        "https://acme.test/docs",
        "https://acme.test/pricing",
        "https://acme.test/guides/intro",
        "https://acme.test/about",
    ]


def test_internal_links_are_capped():
    html = "".join(f'<a href="/docs/{i}">x</a>' for i in range(450))
    assert len(extract_internal_links(_soup(html), "https://acme.test", limit=200)) == 200


def test_nav_links_need_keyword_in_href():
    links = extract_nav_links(_soup(HOMEPAGE), "https://acme.test", ["doc", "help", "support", "guide"])
    assert links == [
        "https://acme.test/docs",
        "https://help.acme.test/support",
        "https://acme.test/guides/intro",
    ]


@pytest.mark.asyncio
async def test_discover_builds_structure():
    fetcher = FakeFetcher(
        pages={
            "https://acme.test": HOMEPAGE,
            "https://acme.test/sitemap.xml": "<urlset><loc>https://acme.test/docs/api</loc></urlset>",
        },
        existing=["https://docs.acme.test/", "https://acme.test/docs", "https://docs.acme.test/guides"],
    )
    structure = await SiteDiscovery(fetcher).discover("https://acme.test")

    assert structure.product_name == "Acme"
    assert structure.discovered_hosts == ("docs.acme.test",)
    assert "https://acme.test/docs" in structure.valid_doc_paths
    assert "https://docs.acme.test/guides" in structure.valid_doc_paths
    assert structure.sitemap_urls == ("https://acme.test/docs/api",)
    assert "https://acme.test/about" in structure.all_internal_links
    assert not structure.is_degraded


@pytest.mark.asyncio
async def test_discover_degrades_when_homepage_fails():
    fetcher = FakeFetcher()
    structure = await SiteDiscovery(fetcher).discover("https://down.test")

    assert structure.product_name == UNKNOWN_PRODUCT
    assert structure.valid_doc_paths == ()
    assert structure.nav_links == ()
    assert structure.all_internal_links == ()
    assert structure.sitemap_urls == ()
    assert structure.is_degraded
    assert fetcher.exists_calls == []


@pytest.mark.asyncio
async def test_structure_is_immutable():
    structure = await SiteDiscovery(FakeFetcher()).discover("https://down.test")
    with pytest.raises(AttributeError):
        structure.product_name = "changed"
