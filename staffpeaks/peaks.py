"""Bar line candidates ("peaks") in a staff projection.

A peak in the projection can come from:
    - a thin or thick bar line
    - a bracket portion
    - a brace portion (see ``braces``)
    - an alto C-clef portion, sorted out later from its offset to the
      measure start
    - a stem with heads above or below the staff
    - just garbage

Pipeline for one staff:
    1. Within the window left between the two ending blanks, find every run
       of columns at or above the bar threshold.
    2. Split each run on derivative extrema (``browse_range``): a wide run
       can hold several bars, e.g. a thin/thick pair.
    3. Refine each side on the steepest derivative (``refine_peak_side``).
    4. Filter on width, vertical white gap and grade.
"""

import enum
import logging
import math
from collections import namedtuple

from . import constants
from .areas import vertical_core
from .sheet import HorizontalSide

logger = logging.getLogger(__name__)


class PeakAttribute(enum.Flag):
    NONE = 0
    THIN = enum.auto()
    THICK = enum.auto()
    BRACE = enum.auto()
    BRACKET_MIDDLE = enum.auto()
    BRACKET_END = enum.auto()
    STAFF_END_LEFT = enum.auto()
    STAFF_END_RIGHT = enum.auto()


_STAFF_END = {
    HorizontalSide.LEFT: PeakAttribute.STAFF_END_LEFT,
    HorizontalSide.RIGHT: PeakAttribute.STAFF_END_RIGHT,
}


def _clamp01(value):
    return min(1.0, max(0.0, value))


class BarImpacts(namedtuple("BarImpacts", ["core", "gap", "start", "stop"])):
    """Quality components of a bar peak, each in [0, 1].

    core: how far the peak top rises above the bar threshold.
    gap: how small the largest vertical white gap is.
    start, stop: steepness of the left and right sides.
    """

    __slots__ = ()

    WEIGHTS = (1.0, 1.0, 1.0, 1.0)

    def __new__(cls, core, gap, start, stop):
        return super().__new__(cls, _clamp01(core), _clamp01(gap), _clamp01(start), _clamp01(stop))

    @property
    def grade(self):
        """Weighted geometric mean of the impacts."""
        total = sum(self.WEIGHTS)
        product = 1.0
        for impact, weight in zip(self, self.WEIGHTS):
            product *= impact ** weight
        return product ** (1.0 / total)


class PeakSide(namedtuple("PeakSide", ["abscissa", "grade"])):
    """Refined (left or right) side of a peak, graded on its derivative."""

    __slots__ = ()


class StaffPeak:
    """A peak of the projection of one staff.

    Identity matters (peaks are graph vertices), so equality is identity.
    """

    def __init__(self, staff, top, bottom, start, stop, impacts=None):
        self.staff = staff
        self.top = top
        self.bottom = bottom
        self.start = start
        self.stop = stop
        self.impacts = impacts
        self.attributes = PeakAttribute.NONE
        self.deskewed_center = None

    @property
    def width(self):
        return self.stop - self.start + 1

    @property
    def mid(self):
        return (self.start + self.stop) // 2

    @property
    def grade(self):
        """Global grade in [0, 1], or None for peaks built without impacts (braces)."""
        return self.impacts.grade if self.impacts is not None else None

    @property
    def bounds(self):
        """(x, y, width, height) rectangle."""
        return (self.start, self.top, self.width, self.bottom - self.top + 1)

    @property
    def center(self):
        return ((self.start + self.stop) / 2.0, (self.top + self.bottom) / 2.0)

    def compute_deskewed_center(self, skew):
        self.deskewed_center = skew.deskewed(self.center)
        return self.deskewed_center

    def set(self, attribute):
        self.attributes |= attribute

    def unset(self, attribute):
        self.attributes &= ~attribute

    def is_set(self, attribute):
        return attribute in self.attributes

    def set_staff_end(self, side):
        self.set(_STAFF_END[side])

    def is_staff_end(self, side):
        return self.is_set(_STAFF_END[side])

    def __repr__(self):
        parts = [f"Peak{{#{getattr(self.staff, 'id', '?')}", f"({self.start}-{self.stop})"]
        if self.grade is not None:
            parts.append(f"g:{self.grade:.2f}")
        if self.attributes:
            parts.append(str(self.attributes).split(".", 1)[-1])
        return " ".join(parts) + "}"


class PeakDetector:
    """Retrieve bar peaks in the projection of one staff.

    Args:
        sheet: ``sheet.Sheet`` (pixels, scale, skew).
        staff: the staff analyzed.
        projection: its ``Projection``.
        params: its ``ThresholdParameters``.
        graph: optional ``PeakGraph``; every accepted peak becomes a vertex.
        min_grade: lowest acceptable grade.
    """

    def __init__(self, sheet, staff, projection, params, graph=None,
                 min_grade=constants.MIN_GRADE):
        self.sheet = sheet
        self.staff = staff
        self.projection = projection
        self.params = params
        self.graph = graph
        self.min_grade = min_grade

    def x_clamp(self, x):
        return min(max(x, 0), self.projection.width - 1)

    # -----------------------------------------------------------------------
    # Scanning
    # -----------------------------------------------------------------------

    def search_window(self, ending_blanks):
        """Abscissa range left for peaks between the two ending blanks."""
        left_blank = ending_blanks.get(HorizontalSide.LEFT)
        right_blank = ending_blanks.get(HorizontalSide.RIGHT)
        x_min = left_blank.stop if left_blank is not None else 0
        x_max = right_blank.start if right_blank is not None else self.projection.width - 1
        return x_min, x_max

    def find_peaks(self, ending_blanks):
        """Retrieve the relevant (bar line) peaks, ordered by abscissa."""
        min_value = self.params.bar_threshold
        x_min, x_max = self.search_window(ending_blanks)
        values = self.projection.values
        peaks = []
        start = -1
        stop = -1

        for x in range(x_min, x_max + 1):
            if values[x] >= min_value:
                if start == -1:
                    start = x
                stop = x
            elif start != -1:
                for peak in self.browse_range(start, stop):
                    self._accept(peak, peaks)
                start = -1

        # Finish ongoing peak if any (this is very unlikely...)
        if start != -1:
            peak = self.create_peak(start, stop)
            if peak is not None:
                self._accept(peak, peaks)

        logger.debug("Staff#%s peaks:%s", self.staff.id, peaks)
        return peaks

    def _accept(self, peak, peaks):
        """Append ``peak`` unless it overlaps the previous one."""
        if peaks and peak.start <= peaks[-1].stop:
            logger.debug("Staff#%s %s overlaps %s", self.staff.id, peak, peaks[-1])
            return False
        peaks.append(peak)
        if self.graph is not None:
            self.graph.add_vertex(peak)
        return True

    def browse_range(self, range_start, range_stop):
        """(Try to) create one or more peaks out of a run above the bar threshold.

        The run is split on derivative extrema: a steep rise opens a peak, a
        steep fall closes it. A fall whose steepest point is the last column
        of the run closes the peak after that column.

        Returns:
            list of created peaks, perhaps empty.
        """
        logger.debug("Staff#%s browseRange [%d..%d]", self.staff.id, range_start, range_stop)
        proj = self.projection
        min_derivative = self.params.min_derivative
        peaks = []
        start = range_start
        x = range_start

        while x <= range_stop:
            der = proj.derivative(x)

            if der >= min_derivative:
                max_der = der
                for xx in range(x + 1, range_stop + 1):
                    xx_der = proj.derivative(xx)
                    if xx_der > max_der:
                        max_der = xx_der
                        x = xx
                    else:
                        break

                start = x
            elif der <= -min_derivative:
                min_der = der
                for xx in range(x + 1, self.x_clamp(range_stop + 1) + 1):
                    xx_der = proj.derivative(xx)
                    if xx_der <= min_der:
                        min_der = xx_der
                        x = xx
                    else:
                        break

                if x == range_stop:
                    x = range_stop + 1

                stop = x

                if start != -1 and start < stop:
                    # Right side must not reach the next rise
                    peak = self.create_peak(start, stop - 1, max_stop=stop)
                    if peak is not None:
                        peaks.append(peak)
                    start = -1

            x += 1

        # A last peak?
        if start != -1:
            peak = self.create_peak(start, range_stop)
            if peak is not None:
                peaks.append(peak)

        return peaks

    # -----------------------------------------------------------------------
    # Peak creation
    # -----------------------------------------------------------------------

    def create_peak(self, raw_start, raw_stop, max_stop=None):
        """(Try to) create a relevant peak at the provided raw location.

        ``max_stop`` bounds the right side search, when another peak follows
        within the same run.

        Returns:
            the ``StaffPeak`` or None when a side cannot be refined, the peak
            is too wide, its white gap too large or its grade too low.
        """
        params = self.params
        staff = self.staff
        min_value = params.bar_threshold
        total_height = (constants.STAFF_LINE_COUNT - 1) * self.sheet.scale.interline
        value_range = max(total_height - min_value, 1)

        # Compute precise start & stop abscissae
        new_start = self.refine_peak_side(raw_start, raw_stop, -1)
        if new_start is None:
            return None
        new_stop = self.refine_peak_side(raw_start, raw_stop, +1, limit=max_stop)
        if new_stop is None:
            return None

        start = new_start.abscissa
        stop = new_stop.abscissa
        width = stop - start + 1

        # Check peak width is neither null nor huge
        if width < 1 or width > params.max_bar_width:
            return None

        value = self.projection.max_value(start, stop)

        x_mid = (start + stop) // 2
        y_top = staff.first_line.y_at(x_mid)
        y_bottom = staff.last_line.y_at(x_mid)

        # If peak is very thin, thicken the lookup area
        dx = 1 if width <= 2 else 0
        data = vertical_core(self.sheet.binary, start - dx, stop + dx, y_top, y_bottom)
        if data.gap > params.gap_threshold:
            return None

        gap_impact = 1 - data.gap / params.gap_threshold if params.gap_threshold else 1.0
        impacts = BarImpacts(
            core=(value - min_value) / value_range,
            gap=gap_impact,
            start=new_start.grade,
            stop=new_stop.grade,
        )

        if impacts.grade < self.min_grade:
            return None

        peak = StaffPeak(staff, y_top, y_bottom, start, stop, impacts)
        peak.compute_deskewed_center(self.sheet.skew)
        logger.debug("Staff#%s %s", staff.id, peak)
        return peak

    def refine_peak_side(self, x_start, x_stop, direction, limit=None):
        """Use the first derivative extremum to refine one side of a peak.

        Maximum derivative for the left side, minimum for the right side.
        The search goes from the raw middle outward, up to ``bar_refine_dx``
        beyond the raw side, and stops after the projection falls below the
        chunk level. A side that is not steep enough invalidates the peak:
        this discards most braces, arpeggios and stems with heads aside.

        Args:
            x_start: raw abscissa that starts the peak.
            x_stop: raw abscissa that stops the peak.
            direction: -1 for going left, +1 for going right.
            limit: optional abscissa the search must not go beyond.

        Returns:
            ``PeakSide`` or None if invalid.
        """
        params = self.params
        proj = self.projection
        dx = params.bar_refine_dx
        mid = (x_start + x_stop) / 2.0

        if direction > 0:
            x1, x2 = int(math.ceil(mid)), self.x_clamp(x_stop + dx)
        else:
            x1, x2 = int(math.floor(mid)), self.x_clamp(x_start - dx)

        if limit is not None:
            x2 = min(x2, limit) if direction > 0 else max(x2, limit)

        best_der = 0
        best_x = None
        x = x1

        while direction * (x2 - x) >= 0:
            der = proj.derivative(x)
            if direction * (best_der - der) > 0:
                best_der = der
                best_x = x

            # Check we are still higher than chunk level
            if proj.value(x) < params.chunk_threshold:
                break

            x += direction

        best_der = abs(best_der)

        if best_x is None or best_der < params.min_derivative:
            return None

        abscissa = best_x - 1 if direction > 0 else best_x
        der_range = max(params.bar_threshold - params.min_derivative, 1)
        return PeakSide(abscissa, best_der / der_range)
