from tfkoyeb.clients.base import HTTPError, NotFoundHTTPError, PermanentHTTPError, RetryableHTTPError
from tfkoyeb.clients.koyeb import KoyebAPI, KoyebClient, Page

__all__ = [
    "KoyebAPI",
    "KoyebClient",
    "Page",
    "HTTPError",
    "NotFoundHTTPError",
    "PermanentHTTPError",
    "RetryableHTTPError",
]
