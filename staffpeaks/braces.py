"""Brace detection on the left of a staff's first bar.

A brace crossing the staff height gives a projection hill that is lower and
rounder than a bar: it rarely reaches the bar threshold and its sides are
not steep, so ``PeakDetector`` rejects it. Here we look for it explicitly,
right to left from a known bar: first the valley separating the brace from
the bar, then a plateau above the (lower) brace threshold.
"""

import logging

from .sheet import HorizontalSide
from .peaks import PeakAttribute, StaffPeak

logger = logging.getLogger(__name__)


class BraceDetector:
    """Look for a brace peak within the projection of one staff.

    Args:
        sheet: ``sheet.Sheet``.
        staff: the staff analyzed.
        projection: its ``Projection``.
        params: its ``ThresholdParameters``.
        blanks: all blanks of the projection, ascending.
        ending_blanks: selected ending blank per side.
    """

    def __init__(self, sheet, staff, projection, params, blanks, ending_blanks):
        self.sheet = sheet
        self.staff = staff
        self.projection = projection
        self.params = params
        self.blanks = blanks
        self.ending_blanks = ending_blanks

    def find_brace_peak(self, min_left, max_right):
        """Try to find a brace-compatible peak on the left of ``max_right``.

        Args:
            min_left: minimum abscissa on left.
            max_right: maximum abscissa on right, typically within the bar.

        Returns:
            a ``StaffPeak`` flagged BRACE, or None.
        """
        min_value = self.params.brace_threshold
        left_blank = self.ending_blanks.get(HorizontalSide.LEFT)
        x_min = max(min_left, left_blank.stop if left_blank is not None else 0)
        max_right = min(max_right, self.projection.width - 1)

        brace_stop = -1
        brace_start = -1
        valley_hit = False

        # First finding valley left of bar, then brace peak if any
        for x in range(max_right, x_min - 1, -1):
            if self.projection.value(x) >= min_value:
                if not valley_hit:
                    continue
                if brace_stop == -1:
                    brace_stop = x
                brace_start = x
            elif not valley_hit:
                valley_hit = True
            elif brace_stop != -1:
                return self.create_brace_peak(brace_start, brace_stop, max_right)

        logger.debug("Staff#%s no brace in [%d..%d]", self.staff.id, x_min, max_right)
        return None

    def create_brace_peak(self, raw_start, raw_stop, max_right):
        """Precisely define the bounds of a brace candidate.

        The left side is pushed to the nearest blank on the left, then down
        the slope to the local minimum. On the right there may be no real
        blank between brace and bar, so the lowest point of the valley is
        used.

        Returns:
            the brace ``StaffPeak`` or None.
        """
        proj = self.projection

        # Extend left abscissa until a blank (no-staff) is reached
        left_blank = None
        for blank in self.blanks:
            if blank.stop >= raw_start:
                break
            left_blank = blank

        if left_blank is None:
            return None

        start = left_blank.stop
        value = proj.value(start)
        while start > 0 and proj.value(start - 1) < value:
            start -= 1
            value = proj.value(start)

        best_value = None
        stop = -1
        for x in range(raw_stop, min(max_right, proj.width - 1) + 1):
            value = proj.value(x)
            if best_value is None or value < best_value:
                best_value = value
                stop = x

        if stop == -1:
            return None

        x_mid = (start + stop) // 2
        y_top = self.staff.first_line.y_at(x_mid)
        y_bottom = self.staff.last_line.y_at(x_mid)

        brace = StaffPeak(self.staff, y_top, y_bottom, start, stop)
        brace.set(PeakAttribute.BRACE)
        brace.compute_deskewed_center(self.sheet.skew)
        logger.debug("Staff#%s brace %s", self.staff.id, brace)
        return brace
