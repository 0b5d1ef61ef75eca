"""
Shared test helpers.
"""

from statiq.http import HTTPRequest


# 2024-06-15 10:00:00 UTC
MTIME = 1718445600


def make_request(path: str, method: str = "GET", query: str = "", **headers: str) -> HTTPRequest:
    """Build a request without going through the parser."""
    return HTTPRequest(
        method=method,
        path=path,
        query_string=query,
        headers={name.replace("_", "-").lower(): value for name, value in headers.items()},
        client_address=("127.0.0.1", 54321),
    )
