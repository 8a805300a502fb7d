"""
Version string helpers: stability classification and tag normalization.
"""

import re

from dotsync.constants import UNSTABLE_VERSION_KEYWORDS

# A keyword counts when bounded on each side by a word boundary or a non-letter,
# so "go1.12beta1" is unstable while "arch" does not contain "rc".
_UNSTABLE_RX = re.compile(
    r"(?:\b|[^A-Za-z])(?:{})(?:\b|[^A-Za-z])".format(
        "|".join(UNSTABLE_VERSION_KEYWORDS)
    )
)

_LEADING_NON_DIGITS_RX = re.compile(r"^\D+")


def is_stable(version: str) -> bool:
    """
    Classify a version string (or asset name) as stable.

    Returns:
        bool: False if the string contains an unstable keyword such as "alpha" or "rc", True otherwise.
    """
    return _UNSTABLE_RX.search(version) is None


def normalize_version(version: str) -> str:
    """
    Strip whitespace and any leading non-digit characters, so "v1.2.3" becomes "1.2.3".
    """
    return _LEADING_NON_DIGITS_RX.sub("", version.strip())


def versions_differ(current: str, candidate: str) -> bool:
    return normalize_version(current) != normalize_version(candidate)
