"""
Gateway error taxonomy.

MissingParameter and UpstreamFetchFailure are raised by the proxy route and
rendered as plain text by the handlers registered in gateway.main.
An injection that finds no markers is not an error: the body passes through.
"""


class GatewayError(RuntimeError):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingParameter(GatewayError):
    """A required query parameter is absent. Never retried."""

    status_code = 400

    def __init__(self, name: str):
        super().__init__(f"Missing {name} parameter")
        self.name = name


class UpstreamFetchFailure(GatewayError):
    """
    DNS / connect / timeout / non-2xx failure while fetching the target page.
    Only raised before any body bytes were sent; mid-stream failures abort the
    downstream connection instead.
    """

    status_code = 500

    def __init__(self, url: str, cause: Exception):
        super().__init__(f"Error fetching URL: {cause}")
        self.url = url
        self.cause = cause
