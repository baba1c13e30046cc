"""Tuned parameters for staff projection analysis.

Every value is a fraction of the staff interline (the vertical distance
between two adjacent staff lines), so the same constants work at any
resolution. ``thresholds.ScaleThresholds`` turns them into pixels.
"""

# Abscissa margin for checks around staff
STAFF_ABSCISSA_MARGIN = 10.0

# Abscissa margin for chunks check around bar
BAR_CHUNK_DX = 0.4

# Abscissa margin for refining peak sides
BAR_REFINE_DX = 0.25

# Minimum absolute derivative for peak side
MIN_DERIVATIVE = 0.625

# Minimum cumul value to detect bar peak
BAR_THRESHOLD = 2.5

# Minimum cumul value to detect brace peak
BRACE_THRESHOLD = 1.1

# Maximum vertical gap length in a bar
GAP_THRESHOLD = 0.75

# Maximum cumul value to detect chunk (on top of lines)
CHUNK_THRESHOLD = 0.8

# Minimum width for a wide blank region (to limit peaks search)
MIN_WIDE_BLANK_WIDTH = 2.0

# Minimum width for a small blank region (to end a staff side)
MIN_SMALL_BLANK_WIDTH = 0.1

# Maximum bar width
MAX_BAR_WIDTH = 1.0

# Maximum dx between bar and right end of staff lines
MAX_BAR_TO_LINES_RIGHT_END = 0.15

# Maximum cumul value to detect no-line regions.
# Unlike the others, this one is a fraction of the mean staff LINE thickness.
BLANK_THRESHOLD = 2.5

# Lowest grade for a peak to be kept at all
MIN_GRADE = 0.1

# Number of lines in a standard staff (used for the theoretical staff height)
STAFF_LINE_COUNT = 5

SCALE_FRACTIONS = {
    "staff_abscissa_margin": STAFF_ABSCISSA_MARGIN,
    "bar_chunk_dx": BAR_CHUNK_DX,
    "bar_refine_dx": BAR_REFINE_DX,
    "min_derivative": MIN_DERIVATIVE,
    "bar_threshold": BAR_THRESHOLD,
    "brace_threshold": BRACE_THRESHOLD,
    "gap_threshold": GAP_THRESHOLD,
    "min_wide_blank_width": MIN_WIDE_BLANK_WIDTH,
    "min_small_blank_width": MIN_SMALL_BLANK_WIDTH,
    "max_bar_width": MAX_BAR_WIDTH,
    "max_bar_to_lines_right_end": MAX_BAR_TO_LINES_RIGHT_END,
}
