"""runreport - Test run history tracking and email reporting."""

from runreport.__version__ import (
    __description__,
    __license__,
    __title__,
    __version__,
    __version_info__,
    get_version,
)

__all__ = [
    "__version__",
    "__version_info__",
    "__title__",
    "__description__",
    "__license__",
    "get_version",
]
