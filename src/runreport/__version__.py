"""Version information for runreport."""

__version__ = "0.1.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Release information
__title__ = "runreport"
__description__ = "Test run history tracking and email reporting for end-to-end suites"
__license__ = "MIT"


def get_version() -> str:
    """Return the current version string."""
    return __version__
