"""
Favourites: declarative install/uninstall control over named items.

A package-manager binding reports what it wants, what it does not want and what
is currently installed; the base class works out the difference and reports
what a fill or cull actually changed.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple

from dotsync.download.interfaces import Status
from dotsync.log_utils import logger


def diff(before: Sequence[str], after: Sequence[str]) -> Tuple[List[str], List[str]]:
    """
    Compare two snapshots of installed names.

    Returns:
        Tuple[List[str], List[str]]: `(absent, present)` where `absent` holds the items
        of `before` missing from `after` (in `before` order) and `present` holds the
        items of `after` missing from `before` (in `after` order).
    """
    after_set = set(after)
    before_set = set(before)
    absent = [item for item in before if item not in after_set]
    present = [item for item in after if item not in before_set]
    return absent, present


class Favourites(ABC):
    """
    Base class for package-manager bindings under declarative control.

    Subclasses implement found(), wanted(), unwanted(), fill() and cull().
    fill() is expected to install missing(); cull() to remove surplus().
    """

    name = "favourites"

    @abstractmethod
    def found(self) -> List[str]:
        """Names currently installed."""

    @abstractmethod
    def wanted(self) -> List[str]:
        """Names that should be installed."""

    @abstractmethod
    def unwanted(self) -> List[str]:
        """Names that should be removed if present."""

    @abstractmethod
    def fill(self) -> None:
        """Install everything in missing()."""

    @abstractmethod
    def cull(self) -> None:
        """Remove everything in surplus()."""

    def missing(self) -> List[str]:
        """wanted() minus found(), in wanted() order."""
        found = set(self.found())
        return [name for name in self.wanted() if name not in found]

    def surplus(self) -> List[str]:
        """unwanted() that are also found(), in unwanted() order."""
        found = set(self.found())
        return [name for name in self.unwanted() if name in found]

    def _act_and_status(self, action_name: str, action) -> Status:
        before = self.found()
        action()
        after = self.found()
        absent, present = diff(before, after)
        logger.debug(
            "%s %s: %d absent, %d present", self.name, action_name, len(absent), len(present)
        )
        if not absent and not present:
            return Status.no_change("")
        return Status.changed(",".join(absent), ",".join(present))

    def fill_and_status(self) -> Status:
        """
        Run fill() and report which names disappeared and which appeared.

        Errors raised by fill() propagate and no status is produced.
        """
        return self._act_and_status("fill", self.fill)

    def cull_and_status(self) -> Status:
        """
        Run cull() and report which names disappeared and which appeared.

        Errors raised by cull() propagate and no status is produced.
        """
        return self._act_and_status("cull", self.cull)
