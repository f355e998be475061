"""
URL decomposition into the six-slot `parsed_url` tuple of SearXNG results.
"""

from searx_edge.search.models import EMPTY_PARSED_URL, ParsedUrl

_SCHEMES = (("https://", "https"), ("http://", "http"))


def decompose(url: str) -> ParsedUrl:
    """Split a URL into (scheme, host, path, "", query, "").

    Only the literal `http://` and `https://` prefixes are recognized as a
    scheme. Nothing is decoded or normalized. Slots 4 and 6 (params and
    fragment in urlparse terms) are always empty.

    Args:
        url: Any string.

    Returns:
        Six-tuple of strings; all empty for empty input.
    """
    if not url:
        return EMPTY_PARSED_URL

    scheme = ""
    rest = url
    for prefix, name in _SCHEMES:
        if rest.startswith(prefix):
            scheme = name
            rest = rest[len(prefix) :]
            break

    host, slash, tail = rest.partition("/")
    path = query = ""
    if slash:
        path, _, query = (slash + tail).partition("?")

    return (scheme, host, path, "", query, "")
