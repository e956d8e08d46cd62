import pytest

from pipelines.heuristics import dedupe, is_doc_like, same_site, strip_www


class TestIsDocLike:

    @pytest.mark.parametrize("url", [
        "https://example.com/docs/getting-started",
        "https://example.com/help-center",
        "https://example.com/api/v2/reference",
        "https://docs.example.com/",
        "https://example.com/blog/post-1",
        "https://example.com/FAQ",
    ])
    def test_documentation_urls_match(self, url):
        assert is_doc_like(url)

    @pytest.mark.parametrize("url", [
        "https://example.com/",
        "https://example.com/about-us",
        "https://example.com/careers",
        "not a url",
        "",
    ])
    def test_other_urls_do_not_match(self, url):
        assert not is_doc_like(url)

    def test_custom_keywords(self):
        assert is_doc_like("https://example.com/manual/intro", keywords=["manual"])
        assert not is_doc_like("https://example.com/docs", keywords=["manual"])

    def test_empty_keyword_list_matches_nothing(self):
        assert not is_doc_like("https://example.com/docs", keywords=[])


class TestSameSite:

    def test_same_host_and_subdomains(self):
        assert same_site("https://example.com/docs", "example.com")
        assert same_site("https://docs.example.com/a", "example.com")
        assert same_site("https://www.example.com/a", "example.com")
        assert same_site("https://example.com/a", "www.example.com")

    def test_other_hosts_rejected(self):
        assert not same_site("https://notexample.com/docs", "example.com")
        assert not same_site("https://example.com.evil.test/docs", "example.com")
        assert not same_site("/relative/path", "example.com")


def test_strip_www():
    assert strip_www("WWW.Example.com") == "example.com"
    assert strip_www("docs.example.com") == "docs.example.com"


def test_dedupe_keeps_first_occurrence_order():
    assert dedupe(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]
