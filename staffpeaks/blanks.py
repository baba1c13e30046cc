"""Blank regions: abscissa ranges where the staff projection shows no staff lines.

A blank is a maximal run of columns whose projection value is at or below
the blank threshold (a couple of line thicknesses). Wide blanks on each
side of the staff limit the search for bar peaks; small blanks tell where
the staff lines really stop.
"""

import logging
from collections import namedtuple

from .sheet import HorizontalSide

logger = logging.getLogger(__name__)


class Blank(namedtuple("Blank", ["start", "stop"])):
    """Inclusive abscissa range [start, stop]. Tuple ordering sorts by start."""

    __slots__ = ()

    @property
    def width(self):
        return self.stop - self.start + 1

    @property
    def mid(self):
        return (self.start + self.stop) // 2

    def __repr__(self):
        return f"Blank({self.start}-{self.stop})"


def find_all_blanks(projection, blank_threshold):
    """Scan the whole projection left to right for regions without staff lines.

    Returns:
        list of ``Blank``, ascending and non-overlapping.
    """
    blanks = []
    start = -1
    stop = -1

    for x, value in enumerate(projection.values):
        if value <= blank_threshold:
            if start == -1:
                start = x
            stop = x
        elif start != -1:
            blanks.append(Blank(start, stop))
            start = -1

    # Finish ongoing region if any
    if start != -1:
        blanks.append(Blank(start, stop))

    return blanks


def select_blank(blanks, side, start, min_width):
    """Report the first blank at least ``min_width`` wide, going outward from ``start``.

    Only blanks whose middle lies strictly on the desired side of ``start``
    are considered.

    Args:
        blanks: ascending list from ``find_all_blanks``.
        side: ``HorizontalSide`` to look at.
        start: abscissa for starting search.
        min_width: minimum blank width.

    Returns:
        the ``Blank`` found, or None.
    """
    direction = side.direction
    ordered = reversed(blanks) if side is HorizontalSide.LEFT else blanks

    for blank in ordered:
        # Make sure we are on desired side of the staff
        if direction * (blank.mid - start) > 0 and blank.width >= min_width:
            return blank

    return None


def select_ending_blanks(blanks, staff, min_wide_width):
    """Select, on each staff side, the blank that limits the peak search.

    The first really wide blank encountered going outward wins. If there is
    none, the blank farthest from the staff on that side is taken. With no
    blank at all the mapping is empty.

    Returns:
        dict ``HorizontalSide`` → ``Blank``.
    """
    ending = {}
    if not blanks:
        return ending

    for side in HorizontalSide:
        blank = select_blank(blanks, side, staff.get_abscissa(side), min_wide_width)
        if blank is None:
            # No wide blank has been found, simply pick up the one farthest from staff
            blank = blanks[0] if side is HorizontalSide.LEFT else blanks[-1]
        ending[side] = blank

    logger.debug("Staff#%s endingBlanks:%s", staff.id, ending)
    return ending
