"""Measurements of the ink area lying between two vertical probe lines."""

from collections import namedtuple

import numpy as np

CoreData = namedtuple("CoreData", ["length", "gap"])
CoreData.__doc__ = """length: rows holding ink between the probes; gap: longest run of rows without ink."""


def longest_false_run(flags):
    """Length of the longest run of False values in a 1D boolean array."""
    flags = np.asarray(flags, dtype=bool)
    if flags.size == 0:
        return 0
    # Pad with True so every False run has a rising and a falling edge
    padded = np.concatenate(([True], flags, [True]))
    edges = np.flatnonzero(np.diff(padded.astype(np.int8)))
    if edges.size == 0:
        return 0
    return int((edges[1::2] - edges[0::2]).max())


def vertical_core(binary, x_left, x_right, y_top, y_bottom):
    """Inspect rows [y_top, y_bottom] between columns x_left and x_right (inclusive).

    A row counts as black when any pixel between the two probes is ink.
    Probes and rows are clamped to the image.

    Returns:
        ``CoreData`` with the count of black rows and the largest vertical gap.
    """
    h, w = binary.shape[:2]
    x0 = min(max(x_left, 0), w - 1)
    x1 = min(max(x_right, 0), w - 1)
    y0 = min(max(y_top, 0), h - 1)
    y1 = min(max(y_bottom, 0), h - 1)

    band = binary[y0:y1 + 1, x0:x1 + 1] > 0
    black_rows = np.any(band, axis=1)
    return CoreData(length=int(np.count_nonzero(black_rows)), gap=longest_false_run(black_rows))
