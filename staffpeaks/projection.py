"""Vertical projection of a staff onto the x-axis.

For each column, count the ink pixels between the first and the last line of
the staff. Where there is a bar line the count approaches the staff height;
where there are only staff lines it is about the cumulated line thickness;
beyond the staff ends it drops to (nearly) zero.
"""

import numpy as np

from .sheet import HorizontalSide


class Projection:
    """Cumulated foreground counts indexed by abscissa, with a first difference.

    ``values`` is copied and frozen; ``derivative(0)`` is 0 by convention.
    """

    def __init__(self, values):
        values = np.array(values, dtype=np.int32)
        values.setflags(write=False)
        self._values = values
        derivatives = np.diff(values, prepend=values[:1]) if len(values) else values.copy()
        derivatives.setflags(write=False)
        self._derivatives = derivatives

    def __len__(self):
        return len(self._values)

    @property
    def width(self):
        return len(self._values)

    @property
    def values(self):
        return self._values

    @property
    def derivatives(self):
        return self._derivatives

    def value(self, x):
        return int(self._values[x])

    def derivative(self, x):
        """value(x) - value(x - 1)."""
        return int(self._derivatives[x])

    def max_value(self, start, stop):
        """Highest value over the inclusive range [start, stop]."""
        return int(self._values[start:stop + 1].max())

    def __repr__(self):
        return f"Projection(width={self.width}, max={int(self._values.max()) if self.width else 0})"


def compute_projection(binary, staff, margin):
    """Cumulate, for each abscissa, the ink pixels between the staff's first and last lines.

    Only columns within ``margin`` of the staff abscissa range are computed
    (clamped to the image); other columns stay at zero.

    Args:
        binary: ink=255 image (2D array).
        staff: ``sheet.Staff`` providing first/last line ordinates.
        margin: pixels to look beyond each staff end.

    Returns:
        ``Projection`` over the full image width.
    """
    h, w = binary.shape[:2]
    counts = np.zeros(w, dtype=np.int32)
    x_min = min(max(staff.get_abscissa(HorizontalSide.LEFT) - margin, 0), w - 1)
    x_max = min(max(staff.get_abscissa(HorizontalSide.RIGHT) + margin, 0), w - 1)
    first_line = staff.first_line
    last_line = staff.last_line
    ink = binary > 0

    for x in range(x_min, x_max + 1):
        y_min = max(first_line.y_at(x), 0)
        y_max = min(last_line.y_at(x), h - 1)
        if y_max >= y_min:
            counts[x] = np.count_nonzero(ink[y_min:y_max + 1, x])

    return Projection(counts)
