"""Static resources: bundled gzip payloads with a filesystem fallback.

    StaticResource -- read-only mapping of logical path to gzip bytes
    FileServer -- generic handler serving files below a directory
    StaticPage -- endpoint combining the two under a URL prefix
    InterceptErrors -- routes error statuses to the app's error handler
"""

from mortar.static.files import FileServer
from mortar.static.page import InterceptErrors, StaticPage
from mortar.static.resource import StaticResource

__all__ = [
    "FileServer",
    "InterceptErrors",
    "StaticPage",
    "StaticResource",
]
