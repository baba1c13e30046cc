"""Synthetic rasters and parameters shared by the test modules."""

import numpy as np

from staffpeaks.sheet import LineInfo, Scale, Sheet, Staff
from staffpeaks.thresholds import ThresholdParameters

# Small thresholds for hand-made projections (values up to ~10)
SMALL_PARAMS = dict(
    staff_abscissa_margin=0,
    bar_chunk_dx=1,
    bar_refine_dx=1,
    min_derivative=3,
    bar_threshold=5,
    brace_threshold=3,
    gap_threshold=2,
    min_wide_blank_width=2,
    min_small_blank_width=1,
    max_bar_width=4,
    max_bar_to_lines_right_end=1,
    lines_threshold=2,
    blank_threshold=1,
    chunk_threshold=2,
)


def make_params(**overrides):
    return ThresholdParameters(**dict(SMALL_PARAMS, **overrides))


def image_from_counts(counts, top=5, staff_height=7, margin=5):
    """Binary image whose column x holds ``counts[x]`` ink pixels, from ``top`` down."""
    height = top + staff_height + margin
    img = np.zeros((height, len(counts)), dtype=np.uint8)
    for x, count in enumerate(counts):
        img[top:top + count, x] = 255
    return img


def two_line_staff(width, top=5, staff_height=7, left=None, right=None, id=1):
    """Staff made of its first and last lines only."""
    lines = [
        LineInfo.horizontal(top, 0, width - 1, 1),
        LineInfo.horizontal(top + staff_height - 1, 0, width - 1, 1),
    ]
    return Staff(id, lines, left, right)


def small_sheet(img, interline=2):
    return Sheet(img, Scale(interline, main_fore=1, max_fore=1))


# ---------------------------------------------------------------------------
# Realistic 5-line staff: interline 10, lines 2 pixels thick
# ---------------------------------------------------------------------------

LINE_OFFSETS = (0, 10, 20, 30, 40)
BARS = ((100, 101), (200, 205), (268, 269))


def staff_image(width=300, tops=(20,), lines_x=(30, 269), bars=BARS, ink=255):
    """Staves with lines at ``top + offset`` (2 rows each) and full-height bars."""
    height = max(tops) + 70
    img = np.zeros((height, width), dtype=np.uint8)
    for top in tops:
        for offset in LINE_OFFSETS:
            img[top + offset:top + offset + 2, lines_x[0]:lines_x[1] + 1] = ink
        for x0, x1 in bars:
            img[top:top + 41, x0:x1 + 1] = ink
    return img


def five_line_staff(top=20, lines_x=(30, 269), id=1, right=None):
    lines = [LineInfo.horizontal(top + offset, lines_x[0], lines_x[1], 2) for offset in LINE_OFFSETS]
    return Staff(id, lines, lines_x[0], right if right is not None else lines_x[1])


def staff_scale():
    return Scale(10, main_fore=2, max_fore=2)
