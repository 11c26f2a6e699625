"""
URL handling for proxied targets.
"""


def normalize_url(url: str) -> str:
    """Adds https:// when the scheme is missing, like the dashboard's address bar."""
    if not url:
        return url
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        return "https://" + url
    return url
