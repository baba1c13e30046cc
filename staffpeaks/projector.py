"""Per-staff analysis of the projection onto the x-axis.

We analyze the vertical interior of the staff, because this is where a bar
line must be present; bar portions outside the staff height are much less
typical of a bar.

Pipeline (``StaffProjector.process``):
    1. Cumulate ink pixels for each abscissa
    2. Adjust thresholds to the actual line thicknesses of this staff
    3. Retrieve all regions without staff lines (blanks)
    4. Select the wide blanks that limit the search on each side
    5. Retrieve peaks as bar line raw candidates

Then, on demand: brace lookup on the left of a bar, refinement of the staff
right end.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

from . import constants
from .blanks import find_all_blanks, select_ending_blanks
from .braces import BraceDetector
from .ends import refine_right_end
from .peaks import PeakAttribute, PeakDetector
from .projection import compute_projection
from .thresholds import ScaleThresholds

logger = logging.getLogger(__name__)


class StaffProjector:
    """Retrieve bar line candidates and staff ends from one staff projection.

    Args:
        sheet: ``sheet.Sheet`` providing pixels, scale and skew.
        staff: the ``sheet.Staff`` to analyze.
        peak_graph: sheet-wide ``PeakGraph``.
        scale_thresholds: optional pre-computed ``ScaleThresholds`` (shared
            by all staves of a sheet); computed from the sheet scale if None.
        reporter: optional callable receiving ``series()`` once processed,
            e.g. ``plot.plot_projection``.
    """

    def __init__(self, sheet, staff, peak_graph, scale_thresholds=None, reporter=None):
        self.sheet = sheet
        self.staff = staff
        self.peak_graph = peak_graph
        self.scale_thresholds = (scale_thresholds if scale_thresholds is not None
                                 else ScaleThresholds.from_scale(sheet.scale))
        self.reporter = reporter

        self.params = None
        self.projection = None
        self.all_blanks = []
        self.ending_blanks = {}
        self.brace_peak = None
        self._peaks = []
        self._processed = False

    def __repr__(self):
        return f"StaffProjector#{self.staff.id}"

    @property
    def peaks(self):
        """Read-only view on the peaks, ordered by abscissa."""
        return tuple(self._peaks)

    # -----------------------------------------------------------------------
    # Main processing
    # -----------------------------------------------------------------------

    def compute(self):
        """Projection and staff thresholds only (steps 1 and 2)."""
        self.projection = compute_projection(
            self.sheet.binary, self.staff, self.scale_thresholds.staff_abscissa_margin
        )
        self.params = self.scale_thresholds.for_staff(self.staff, self.sheet.scale)

    def process(self):
        """Process the staff projection to retrieve peaks that may represent bars."""
        logger.debug("StaffProjector analyzing staff#%s", self.staff.id)

        self.compute()

        self.all_blanks = find_all_blanks(self.projection, self.params.blank_threshold)
        logger.debug("Staff#%s allBlanks:%s", self.staff.id, self.all_blanks)

        self.ending_blanks = select_ending_blanks(
            self.all_blanks, self.staff, self.params.min_wide_blank_width
        )

        detector = PeakDetector(self.sheet, self.staff, self.projection, self.params,
                                graph=self.peak_graph)
        self._peaks = detector.find_peaks(self.ending_blanks)
        self._processed = True

        if self.reporter is not None:
            self.reporter(self.series())

        return self.peaks

    def find_brace_peak(self, min_left, max_right):
        """Try to find a brace-compatible peak on the left of ``max_right``.

        The peak found is not stored; see ``brace_peak``.
        """
        self._check_processed("find_brace_peak")
        detector = BraceDetector(self.sheet, self.staff, self.projection, self.params,
                                 self.all_blanks, self.ending_blanks)
        return detector.find_brace_peak(min_left, max_right)

    def refine_right_end(self):
        """Refine the staff right abscissa with the last peak and blanks."""
        self._check_processed("refine_right_end")
        return refine_right_end(self.staff, self._peaks, self.all_blanks, self.params)

    def _check_processed(self, name):
        if not self._processed:
            raise ValueError(f"{name}() before process() on staff#{self.staff.id}")

    # -----------------------------------------------------------------------
    # Peak sequence maintenance
    # -----------------------------------------------------------------------

    def get_start_peak_index(self):
        """Index of the peak flagged as staff left end, or -1."""
        for i, peak in enumerate(self._peaks):
            if peak.is_set(PeakAttribute.STAFF_END_LEFT):
                return i
        return -1

    def insert_peak(self, to_insert, before):
        """Insert a new peak right before an existing one."""
        try:
            index = next(i for i, p in enumerate(self._peaks) if p is before)
        except StopIteration:
            raise ValueError("insert_peak() before a non-existing peak") from None

        self._peaks.insert(index, to_insert)
        self.peak_graph.add_vertex(to_insert)

    def remove_peak(self, peak):
        """Remove a peak from the sequence and from the graph."""
        self._peaks = [p for p in self._peaks if p is not peak]
        self.peak_graph.remove_vertex(peak)

    def remove_peaks(self, to_remove):
        for peak in list(to_remove):
            self.remove_peak(peak)

    # -----------------------------------------------------------------------
    # Diagnostics
    # -----------------------------------------------------------------------

    def series(self):
        """Raw series for charting: values, derivatives and threshold levels."""
        if self.projection is None:
            self.compute()

        params = self.params
        return {
            "title": f"staff#{self.staff.id}",
            "values": self.projection.values,
            "derivatives": self.projection.derivatives,
            "levels": {
                "Der+": params.min_derivative,
                "Der-": -params.min_derivative,
                "StaffHeight": (constants.STAFF_LINE_COUNT - 1) * self.sheet.scale.interline,
                "MinBar": params.bar_threshold,
                "MaxChunk": params.chunk_threshold,
                "MinBrace": params.brace_threshold,
                "Lines": params.lines_threshold,
                "NoStaff": params.blank_threshold,
            },
            "peaks": [(p.start, p.stop) for p in self._peaks],
            "blanks": [(b.start, b.stop) for b in self.all_blanks],
        }


def project_staves(sheet, staves, peak_graph, max_workers=1, reporter=None):
    """Run a ``StaffProjector`` on each staff, in a thread pool if ``max_workers`` > 1.

    All projectors share ``peak_graph``; scale thresholds are computed once.

    Returns:
        list of processed projectors, in staff order.
    """
    scale_thresholds = ScaleThresholds.from_scale(sheet.scale)
    projectors = [StaffProjector(sheet, staff, peak_graph, scale_thresholds, reporter)
                  for staff in staves]

    if max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            list(pool.map(lambda p: p.process(), projectors))
    else:
        for projector in projectors:
            projector.process()

    return projectors
