"""Pure projection of the collection store into the display sequence."""
from collections.abc import Mapping
from urllib.parse import urlparse

from schemas.bookmark import Bookmark, BookmarkView, id_sort_key

ICON_PALETTE = ("🔖", "⭐", "💡", "🚀", "🎯", "📌", "✨", "🔥")
COLOR_PALETTE = (
    "from-blue-500 to-cyan-500",
    "from-purple-500 to-pink-500",
    "from-green-500 to-emerald-500",
    "from-orange-500 to-red-500",
    "from-indigo-500 to-blue-500",
    "from-teal-500 to-green-500",
)


def url_hash(url: str) -> int:
    """
    Sum of the UTF-16 code units of `url`.

    Characters outside the Basic Multilingual Plane count as their two surrogates,
    matching JavaScript's `charCodeAt`.
    """
    data = url.encode("utf-16-le", "surrogatepass")
    return sum(int.from_bytes(data[i:i + 2], "little") for i in range(0, len(data), 2))


def annotate(url: str) -> tuple[str, str]:
    """Return the (icon, color) pair for a url. Same url, same pair."""
    value = url_hash(url)
    return ICON_PALETTE[value % len(ICON_PALETTE)], COLOR_PALETTE[value % len(COLOR_PALETTE)]


def display_domain(url: str) -> str:
    """Host part of `url` without a leading "www.", or the raw url if it has none."""
    try:
        host = urlparse(url).hostname
        if not host:
            # Scheme-less input like "example.com/page"
            host = urlparse(f"//{url}").hostname
    except ValueError:
        # Unbalanced brackets read as a malformed IPv6 host
        return url
    if not host:
        return url
    return host.removeprefix("www.")


def matches(record: Bookmark, query: str) -> bool:
    """Case-insensitive substring match on title or url."""
    needle = query.casefold()
    if not needle:
        return True
    return needle in record.title.casefold() or needle in record.url.casefold()


def sort_key(record: Bookmark) -> tuple:
    """Newest first; equal timestamps fall back to ascending id."""
    # Negating a datetime isn't possible, so sort on the POSIX timestamp
    return (-record.created_at.timestamp(), id_sort_key(record.id))


def project(snapshot: Mapping[str, Bookmark], query: str = "") -> list[BookmarkView]:
    """
    Filter, order and annotate a store snapshot.

    Args:
        snapshot: Read-only id -> record mapping.
        query: Search text; empty keeps everything.

    Returns:
        Display records, newest first.
    """
    selected = sorted((r for r in snapshot.values() if matches(r, query)), key=sort_key)
    views = []
    for record in selected:
        icon, color = annotate(record.url)
        views.append(
            BookmarkView(
                id=record.id,
                title=record.title,
                url=record.url,
                owner_id=record.owner_id,
                created_at=record.created_at,
                icon=icon,
                color=color,
                domain=display_domain(record.url),
            ),
        )
    return views
