"""Refinement of the staff right end.

Until now the staff sides are only defined by the ends of the lines built
from long sections. An extreme peak can serve as abscissa reference if it
lies beyond the current staff end. If there is no such peak, the staff stops
right before the first blank region, assuming a last measure with no bar.
"""

import logging

from .blanks import select_blank
from .sheet import HorizontalSide

logger = logging.getLogger(__name__)


def refine_right_end(staff, peaks, blanks, params):
    """Use the last peak and the first small blank to fix the staff right abscissa.

    Args:
        staff: the staff, its RIGHT abscissa is updated in place.
        peaks: the staff peaks, ascending.
        blanks: all blanks of the staff projection, ascending.
        params: ``ThresholdParameters``.

    Returns:
        the new right abscissa, or None if no clear end was found (the staff
        is then left untouched).
    """
    lines_end = staff.get_abscissa(HorizontalSide.RIGHT)
    staff_end = lines_end
    end_peak = None

    # Look for a suitable peak, it must be external
    if peaks:
        peak = peaks[-1]
        if peak.mid - lines_end >= 0:
            end_peak = peak
            staff_end = peak.stop

    # Stop at first small blank region encountered if any.
    # Keep the additional line chunk if long enough, if not use peak mid.
    blank = select_blank(blanks, HorizontalSide.RIGHT, staff_end, params.min_small_blank_width)

    if blank is None:
        logger.warning("Staff#%s no clear end on RIGHT", staff.id)
        return None

    x = blank.start - 1

    if end_peak is not None:
        if x - end_peak.stop > params.max_bar_to_lines_right_end:
            # Significant line chunks beyond bar, hence peak is not the limit
            logger.debug("Staff#%s RIGHT set at blank %d (vs %d)", staff.id, x, lines_end)
        else:
            # No significant line chunks, stay with peak as the limit
            x = end_peak.mid
            logger.debug("Staff#%s RIGHT set at peak %d (vs %d)", staff.id, x, lines_end)
            end_peak.set_staff_end(HorizontalSide.RIGHT)
    else:
        logger.debug("Staff#%s RIGHT set at blank %d (vs %d)", staff.id, x, lines_end)

    staff.set_abscissa(HorizontalSide.RIGHT, x)
    return x
