"""
Property-based tests for URL Normalizer module.

Uses Hypothesis for property-based testing to verify path qualification,
route validation and batch normalization.
"""

import pytest
from hypothesis import given, settings, assume
from hypothesis import strategies as st

from akamai_purge.enums import UrlErrorCode
from akamai_purge.exceptions import InvalidPathError
from akamai_purge.url_normalizer import PatternRouter, UrlNormalizer, normalize_cp_codes


BASE_URL = "http://example.com"


class SetRouter:
    """Router that knows a fixed set of paths."""

    def __init__(self, known):
        self._known = set(known)

    def is_known_route(self, path: str) -> bool:
        return path in self._known


# Strategies for generating valid test data

@st.composite
def path_segment_strategy(draw) -> str:
    """Generate URL path segments."""
    return draw(st.text(
        alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789-_"),
        min_size=1,
        max_size=15,
    ))


@st.composite
def relative_path_strategy(draw) -> str:
    """Generate relative paths like 'node/1' or 'about'."""
    segments = draw(st.lists(path_segment_strategy(), min_size=1, max_size=4))
    return "/".join(segments)


@st.composite
def base_url_strategy(draw) -> str:
    scheme = draw(st.sampled_from(["http", "https"]))
    host = draw(st.sampled_from(["example.com", "www.example.org", "cdn.example.net"]))
    trailing = draw(st.sampled_from(["", "/"]))
    return f"{scheme}://{host}{trailing}"


class TestRelativePathQualificationProperty:
    """
    Property 1: Relative paths are qualified against the base URL.
    """

    @given(base_url=base_url_strategy(), path=relative_path_strategy())
    @settings(max_examples=100)
    def test_relative_path_is_prefixed_with_base(self, base_url: str, path: str) -> None:
        """
        *For any* base URL and routable relative path, the normalized URL SHALL be
        the base URL without trailing slash, one slash, and the path.
        """
        normalizer = UrlNormalizer(base_url)
        assert normalizer.normalize(path) == base_url.rstrip("/") + "/" + path

    @given(path=relative_path_strategy(), slashes=st.integers(min_value=0, max_value=3))
    @settings(max_examples=100)
    def test_leading_slashes_and_whitespace_are_ignored(self, path: str, slashes: int) -> None:
        normalizer = UrlNormalizer(BASE_URL)
        raw = "  " + "/" * slashes + path + "\t"
        assert normalizer.normalize(raw) == f"{BASE_URL}/{path}"

    def test_single_relative_path(self) -> None:
        normalizer = UrlNormalizer(BASE_URL, SetRouter({"node/1"}))
        assert normalizer.normalize("node/1") == "http://example.com/node/1"

    def test_empty_path_is_front_page(self) -> None:
        normalizer = UrlNormalizer(BASE_URL, SetRouter(set()))
        assert normalizer.normalize("") == "http://example.com/"
        assert normalizer.normalize("/") == "http://example.com/"


class TestAbsoluteUrlPassThroughProperty:
    """
    Property 2: Well-formed absolute URLs pass through unchanged.
    """

    @given(base_url=base_url_strategy(), path=relative_path_strategy())
    @settings(max_examples=100)
    def test_absolute_url_unchanged(self, base_url: str, path: str) -> None:
        """
        *For any* absolute http(s) URL with an ASCII host, normalization SHALL
        return it unchanged, regardless of routing.
        """
        url = base_url.rstrip("/") + "/" + path
        normalizer = UrlNormalizer("http://other.example", SetRouter(set()))
        assert normalizer.normalize(url) == url

    def test_non_ascii_host_is_idna_encoded(self) -> None:
        normalizer = UrlNormalizer(BASE_URL)
        assert normalizer.normalize("http://bücher.example/page") == "http://xn--bcher-kva.example/page"

    def test_idna_keeps_port_and_query(self) -> None:
        normalizer = UrlNormalizer(BASE_URL)
        result = normalizer.normalize("https://bücher.example:8443/a?b=c")
        assert result == "https://xn--bcher-kva.example:8443/a?b=c"

    @pytest.mark.parametrize("url", [
        "ftp://example.com/file",
        "http:///no-host",
        "http://exa mple.com/page",
        "http://example.com:notaport/",
    ])
    def test_malformed_absolute_url_rejected(self, url: str) -> None:
        normalizer = UrlNormalizer(BASE_URL)
        with pytest.raises(InvalidPathError) as exc_info:
            normalizer.normalize(url)
        assert exc_info.value.code == UrlErrorCode.MALFORMED_URL.value
        assert exc_info.value.details["path"] == url


class TestRouteValidationProperty:
    """
    Property 3: Paths the site does not route are rejected.
    """

    @given(path=relative_path_strategy())
    @settings(max_examples=100)
    def test_unknown_route_rejected(self, path: str) -> None:
        normalizer = UrlNormalizer(BASE_URL, SetRouter(set()))
        with pytest.raises(InvalidPathError) as exc_info:
            normalizer.normalize(path)
        assert exc_info.value.code == UrlErrorCode.UNKNOWN_ROUTE.value
        assert path in exc_info.value.message

    def test_pattern_router_matches_shell_patterns(self) -> None:
        router = PatternRouter(["node/*", "/about/"])
        assert router.is_known_route("node/1")
        assert router.is_known_route("about")
        assert router.is_known_route("node/2?page=1")
        assert not router.is_known_route("admin")

    @given(path=relative_path_strategy())
    @settings(max_examples=100)
    def test_empty_pattern_router_accepts_everything(self, path: str) -> None:
        assert PatternRouter().is_known_route(path)


class TestBatchNormalizationProperty:
    """
    Property 4: Batch normalization collects every error and deduplicates.
    """

    @given(paths=st.lists(relative_path_strategy(), min_size=1, max_size=10))
    @settings(max_examples=100)
    def test_output_is_deduplicated_in_first_seen_order(self, paths: list[str]) -> None:
        normalizer = UrlNormalizer(BASE_URL)
        result = normalizer.normalize_many(paths + list(reversed(paths)))

        expected = []
        for path in paths:
            url = f"{BASE_URL}/{path}"
            if url not in expected:
                expected.append(url)
        assert result.urls == expected
        assert result.valid

    @given(
        good=st.lists(relative_path_strategy(), min_size=0, max_size=5, unique=True),
        bad=st.lists(relative_path_strategy(), min_size=1, max_size=5, unique=True),
    )
    @settings(max_examples=100)
    def test_all_errors_collected(self, good: list[str], bad: list[str]) -> None:
        assume(not set(good) & set(bad))
        normalizer = UrlNormalizer(BASE_URL, SetRouter(good))
        result = normalizer.normalize_many(bad + good)

        assert [error.path for error in result.errors] == bad
        assert all(error.code == UrlErrorCode.UNKNOWN_ROUTE for error in result.errors)
        assert result.urls == [f"{BASE_URL}/{path}" for path in good]
        assert not result.valid

    def test_blank_lines_skipped(self) -> None:
        normalizer = UrlNormalizer(BASE_URL)
        result = normalizer.normalize_many(["", "   ", "node/1", "\t"])
        assert result.urls == ["http://example.com/node/1"]
        assert result.errors == []


class TestManagedUrlProperty:
    """
    Property 5: Managed URL detection is a prefix check on the base URL.
    """

    @given(path=relative_path_strategy())
    @settings(max_examples=100)
    def test_urls_under_base_are_managed(self, path: str) -> None:
        normalizer = UrlNormalizer(BASE_URL + "/")
        assert normalizer.is_managed_url(f"{BASE_URL}/{path}")
        assert not normalizer.is_managed_url(f"https://elsewhere.example/{path}")

    def test_explicit_base_overrides_default(self) -> None:
        normalizer = UrlNormalizer(BASE_URL)
        assert normalizer.is_managed_url("http://other.example/x", base_url="http://other.example/")

    def test_empty_base_manages_nothing(self) -> None:
        assert not UrlNormalizer("").is_managed_url("http://example.com/")


class TestMissingBaseUrlProperty:
    """
    Property 48: Without an http(s) base URL relative paths cannot be qualified.
    """

    @given(path=relative_path_strategy(), base_url=st.sampled_from(["", "  ", "example.com", "ftp://example.com"]))
    @settings(max_examples=100)
    def test_relative_path_rejected(self, path: str, base_url: str) -> None:
        normalizer = UrlNormalizer(base_url)
        result = normalizer.normalize_many([path])

        assert result.urls == []
        assert [e.code for e in result.errors] == [UrlErrorCode.MISSING_BASE_URL]

    def test_single_path_raises(self) -> None:
        with pytest.raises(InvalidPathError) as exc_info:
            UrlNormalizer("").normalize("node/11")
        assert exc_info.value.code == UrlErrorCode.MISSING_BASE_URL.value

    def test_absolute_url_still_accepted(self) -> None:
        assert UrlNormalizer("").normalize("https://example.com/node/11") == "https://example.com/node/11"


class TestCpCodeNormalizationProperty:
    """
    Property 49: CP codes are validated as digits and passed through unqualified.
    """

    @given(codes=st.lists(st.integers(min_value=1, max_value=10 ** 7), min_size=1, max_size=10))
    @settings(max_examples=100)
    def test_codes_deduplicated_in_order(self, codes: list[int]) -> None:
        raw = [f" {code} " for code in codes]
        expected = list(dict.fromkeys(str(code) for code in codes))

        result = normalize_cp_codes(raw)

        assert result.urls == expected
        assert result.errors == []

    @pytest.mark.parametrize("code", ["abc", "12a", "http://example.com/", "/node/1", "１２３"])
    def test_non_digit_codes_rejected(self, code: str) -> None:
        result = normalize_cp_codes(["42", code, "", "   "])

        assert result.urls == ["42"]
        assert [(e.path, e.code) for e in result.errors] == [(code, UrlErrorCode.INVALID_CP_CODE)]
