"""Tests for the view projector."""
from collections.abc import Callable
from types import MappingProxyType

from schemas.bookmark import Bookmark
from services.view_projector import (
    COLOR_PALETTE,
    ICON_PALETTE,
    annotate,
    display_domain,
    project,
    url_hash,
)


def _snapshot(*records: Bookmark) -> MappingProxyType:
    return MappingProxyType({r.id: r for r in records})


def test__project__search_matches_title_case_insensitively(
    make_bookmark: Callable[..., Bookmark],
) -> None:
    """Searching "git" keeps only the GitHub bookmark."""
    snapshot = _snapshot(
        make_bookmark("1", title="GitHub", url="https://github.com"),
        make_bookmark("2", title="Example", url="https://example.com"),
    )

    view = project(snapshot, "git")

    assert [v.id for v in view] == ["1"]


def test__project__search_matches_url(make_bookmark: Callable[..., Bookmark]) -> None:
    """The query also matches against the url."""
    snapshot = _snapshot(
        make_bookmark("1", title="Docs", url="https://docs.python.org"),
        make_bookmark("2", title="News", url="https://news.ycombinator.com"),
    )

    assert [v.id for v in project(snapshot, "PYTHON")] == ["1"]


def test__project__empty_query_keeps_everything(make_bookmark: Callable[..., Bookmark]) -> None:
    """An empty query filters nothing."""
    snapshot = _snapshot(make_bookmark("1"), make_bookmark("2"))
    assert len(project(snapshot, "")) == 2


def test__project__no_matches_returns_empty(make_bookmark: Callable[..., Bookmark]) -> None:
    """A query that matches nothing yields an empty view."""
    snapshot = _snapshot(make_bookmark("1", title="GitHub", url="https://github.com"))
    assert project(snapshot, "zzz") == []


def test__project__orders_newest_first(make_bookmark: Callable[..., Bookmark]) -> None:
    """Records are ordered by created_at descending."""
    snapshot = _snapshot(
        make_bookmark("a", minutes=1),
        make_bookmark("b", minutes=3),
        make_bookmark("c", minutes=2),
    )

    assert [v.id for v in project(snapshot)] == ["b", "c", "a"]


def test__project__ties_break_on_ascending_id(make_bookmark: Callable[..., Bookmark]) -> None:
    """Equal timestamps fall back to ascending id, numerically for numeric ids."""
    snapshot = _snapshot(
        make_bookmark("10", minutes=5),
        make_bookmark("9", minutes=5),
        make_bookmark("2", minutes=5),
    )

    assert [v.id for v in project(snapshot)] == ["2", "9", "10"]


def test__project__is_deterministic(make_bookmark: Callable[..., Bookmark]) -> None:
    """Same snapshot and query always give the same sequence and annotations."""
    snapshot = _snapshot(
        make_bookmark("1", url="https://github.com", minutes=1),
        make_bookmark("2", url="https://example.com", minutes=1),
        make_bookmark("3", url="https://python.org", minutes=2),
    )

    assert project(snapshot, "o") == project(snapshot, "o")


def test__annotate__ascii_url_sums_character_codes() -> None:
    """For ASCII urls the hash is the plain character code sum."""
    url = "https://example.com"
    value = sum(ord(c) for c in url)

    assert url_hash(url) == value
    assert annotate(url) == (ICON_PALETTE[value % 8], COLOR_PALETTE[value % 6])


def test__annotate__known_values() -> None:
    """Single-character urls pin the palette order."""
    # "a" == 97: 97 % 8 == 1, 97 % 6 == 1
    assert annotate("a") == ("⭐", "from-purple-500 to-pink-500")
    # "`" == 96: 96 % 8 == 0, 96 % 6 == 0
    assert annotate("`") == ("🔖", "from-blue-500 to-cyan-500")


def test__project__annotation_depends_only_on_url(make_bookmark: Callable[..., Bookmark]) -> None:
    """Two records with the same url share icon and color."""
    snapshot = _snapshot(
        make_bookmark("1", title="One", url="https://same.example"),
        make_bookmark("2", title="Two", url="https://same.example"),
    )
    first, second = project(snapshot)

    assert (first.icon, first.color) == (second.icon, second.color)


def test__palettes__have_expected_sizes() -> None:
    """Eight icons and six colors."""
    assert len(ICON_PALETTE) == 8
    assert len(COLOR_PALETTE) == 6


def test__display_domain__strips_www() -> None:
    """The display domain is the host without "www."."""
    assert display_domain("https://www.github.com/python") == "github.com"
    assert display_domain("example.com/page") == "example.com"
    assert display_domain("") == ""


def test__url_hash__astral_characters_count_as_surrogate_pairs() -> None:
    """Characters outside the BMP contribute both UTF-16 surrogates."""
    url = "https://😀.com"

    # 1080 for the ASCII part, 0xD83D + 0xDE00 for the emoji
    assert url_hash(url) == 113269
    assert annotate(url) == ("📌", "from-purple-500 to-pink-500")


def test__display_domain__malformed_host_falls_back_to_url() -> None:
    """An unbalanced bracket isn't a parse error, just an undisplayable host."""
    assert display_domain("http://[not-ipv6") == "http://[not-ipv6"
    assert display_domain("[::1") == "[::1"


def test__project__tolerates_malformed_url(make_bookmark: Callable[..., Bookmark]) -> None:
    """A record whose url can't be parsed is still projected."""
    snapshot = _snapshot(
        make_bookmark("1", url="http://[not-ipv6", minutes=1),
        make_bookmark("2", url="https://github.com"),
    )

    view = project(snapshot)

    assert [v.id for v in view] == ["1", "2"]
    assert view[0].domain == "http://[not-ipv6"


def test__project__non_ascii_digit_ids_sort_as_text(
    make_bookmark: Callable[..., Bookmark],
) -> None:
    """Ids like "²" are digits to str.isdigit but not integers; they sort as text."""
    snapshot = _snapshot(
        make_bookmark("²", minutes=5),
        make_bookmark("10", minutes=5),
        make_bookmark("9", minutes=5),
    )

    assert [v.id for v in project(snapshot)] == ["9", "10", "²"]
