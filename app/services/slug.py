import re

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def make_slug(title: str, disambiguator: int) -> str:
    """Build a URL-safe slug such as ``mazda-3-i-touring-1700000000000``.

    The disambiguator (usually a millisecond timestamp) keeps two listings
    with the same title apart. A title without letters or digits gives an
    empty stem, so the slug is just ``-<disambiguator>``.
    """
    if disambiguator < 0:
        raise ValueError("disambiguator must be non-negative")
    stem = _NON_ALNUM.sub("-", (title or "").lower()).strip("-")
    return f"{stem}-{int(disambiguator)}"
