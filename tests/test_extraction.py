import pytest

from conftest import FakeFetcher
from pipelines.concurrency import RateLimiter
from pipelines.discovery import SiteStructure
from pipelines.extraction import (
    MAX_CONTENT_CHARS,
    ContentExtractor,
    build_candidate_urls,
    parse_page,
)

DOC_PAGE = """
<html>
<head>
  <title>Install Acme</title>
  <meta name="description" content="How to install Acme">
  <style>body { font-family: Inter; }</style>
</head>
<body>
  <div class="sidebar">Sidebar noise</div>
  <main>
    <h1>Install</h1>
    <p>Run the installer and follow the prompts.</p>
    <h2>Requirements</h2>
    <pre><code class="language-bash">pip install acme-client</code></pre>
    <pre><code>x = 1</code></pre>
    <div class="highlight">pip install acme-client</div>
    <img src="/img/logo.png" alt="Acme logo">
    <img src="/img/diagram.png" alt="Architecture">
    <img src="data:image/png;base64,AAAA" alt="inline">
    <h5>Too deep</h5>
  </main>
  <script>var tracking = true;</script>
</body>
</html>
"""


def test_parse_page_extracts_fields():
    page = parse_page("https://acme.test/docs/install", DOC_PAGE)

    assert page.title == "Install Acme"
    assert page.excerpt == "How to install Acme"
    assert page.code_blocks == [{"language": "bash", "code": "pip install acme-client"}]
    assert page.images == [{"src": "https://acme.test/img/diagram.png", "alt": "Architecture"}]
    assert page.headings == [{"level": 1, "text": "Install"}, {"level": 2, "text": "Requirements"}]
    assert "Run the installer" in page.content
    assert "Sidebar noise" not in page.content
    assert "tracking" not in page.content
    assert page.word_count > 0


def test_parse_page_title_fallbacks():
    assert parse_page("https://a.test/docs", "<html><body><h1>Heading</h1></body></html>").title == "Heading"
    assert parse_page("https://a.test/docs", "<html><body><p>text</p></body></html>").title == "Untitled"


def test_content_is_capped_but_word_count_is_not():
    words = " ".join(["word"] * 3000)
    page = parse_page("https://a.test/docs", f"<html><body><article>{words}</article></body></html>")
    assert len(page.content) <= MAX_CONTENT_CHARS
    assert page.word_count == 3000


def test_build_candidate_urls_merges_and_filters():
    structure = SiteStructure(
        product_name="Acme",
        base_url="https://acme.test",
        valid_doc_paths=("https://acme.test/docs",),
        nav_links=("https://acme.test/docs", "https://acme.test/guides"),
        sitemap_urls=("https://acme.test/help/a",),
        all_internal_links=("https://acme.test/about", "https://acme.test/api"),
    )
    assert build_candidate_urls(structure) == [
        "https://acme.test/docs",
        "https://acme.test/guides",
        "https://acme.test/help/a",
        "https://acme.test/api",
    ]


def test_build_candidate_urls_for_degraded_structure_is_empty():
    assert build_candidate_urls(SiteStructure(product_name="Unknown Product", base_url="https://x.test")) == []


def _page(n):
    return f"<html><head><title>Page {n}</title></head><body><main>{'text ' * 2000}</main></body></html>"


@pytest.mark.asyncio
async def test_extract_skips_failures_and_keeps_order():
    urls = [f"https://acme.test/docs/{i}" for i in range(5)]
    fetcher = FakeFetcher(pages={u: _page(i) for i, u in enumerate(urls) if i != 2})
    extractor = ContentExtractor(fetcher, RateLimiter(0), first_pass=60, min_pages=1)

    pages = await extractor.extract(urls)

    assert [p.url for p in pages] == [u for i, u in enumerate(urls) if i != 2]
    assert all(len(p.content) <= MAX_CONTENT_CHARS for p in pages)


@pytest.mark.asyncio
async def test_second_pass_runs_when_below_target():
    urls = [f"https://acme.test/docs/{i}" for i in range(8)]
    fetcher = FakeFetcher(pages={u: _page(i) for i, u in enumerate(urls) if i >= 4})
    extractor = ContentExtractor(fetcher, RateLimiter(0), first_pass=4, second_pass_end=8, min_pages=3)

    pages = await extractor.extract(urls)

    assert [p.url for p in pages] == urls[4:]
    assert fetcher.text_calls == urls


@pytest.mark.asyncio
async def test_no_second_pass_when_target_met():
    urls = [f"https://acme.test/docs/{i}" for i in range(8)]
    fetcher = FakeFetcher(pages={u: _page(i) for i, u in enumerate(urls)})
    extractor = ContentExtractor(fetcher, RateLimiter(0), first_pass=4, second_pass_end=8, min_pages=3)

    pages = await extractor.extract(urls)

    assert len(pages) == 4
    assert fetcher.text_calls == urls[:4]


@pytest.mark.asyncio
async def test_empty_candidate_list():
    fetcher = FakeFetcher()
    assert await ContentExtractor(fetcher, RateLimiter(0)).extract([]) == []
    assert fetcher.text_calls == []
