"""Sheet-level collaborators of the staff projector.

Staff line detection, scale calibration and skew estimation are done
elsewhere. This module only holds the small objects the projector reads them
through, with straight-line implementations good enough for clean scans and
for synthetic test images:

    - ``Scale``: interline and line thickness, fraction to pixel conversion
    - ``Skew``: global sheet slope, used to deskew peak centers
    - ``LineInfo``: one staff line, ordinate at any abscissa
    - ``Staff``: its lines plus a mutable abscissa range
    - ``Sheet``: the binarized raster (ink = 255) with its scale and skew
"""

import enum
import math

import numpy as np


class HorizontalSide(enum.Enum):
    LEFT = -1
    RIGHT = 1

    @property
    def direction(self):
        """-1 when going left, +1 when going right."""
        return self.value


class Orientation(enum.Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class Scale:
    """Sheet scale, everything measured in pixels.

    Args:
        interline: vertical distance between two staff lines.
        main_fore: most frequent staff line thickness.
        max_fore: maximum staff line thickness (upper foreground run length).
    """

    def __init__(self, interline, main_fore=None, max_fore=None):
        if interline <= 0:
            raise ValueError(f"Interline must be positive, got {interline}")
        self.interline = int(interline)
        self.main_fore = int(main_fore) if main_fore is not None else max(1, self.interline // 6)
        self.max_fore = int(max_fore) if max_fore is not None else self.main_fore

    def to_pixels(self, fraction):
        """Interline fraction → rounded pixel count."""
        return int(round(fraction * self.interline))

    def __repr__(self):
        return f"Scale(interline={self.interline}, main={self.main_fore}, max={self.max_fore})"


class Skew:
    """Global sheet skew, as the slope of the staff lines (dy / dx)."""

    def __init__(self, slope=0.0):
        self.slope = slope
        angle = math.atan(slope)
        self._cos = math.cos(angle)
        self._sin = math.sin(angle)

    def deskewed(self, point):
        """Rotate an (x, y) point so that lines of this slope become horizontal."""
        x, y = point
        return (x * self._cos + y * self._sin, y * self._cos - x * self._sin)


class LineInfo:
    """A straight staff line going through two points, with its thickness."""

    def __init__(self, x_left, y_left, x_right, y_right, thickness):
        self.x_left = x_left
        self.y_left = y_left
        self.x_right = x_right
        self.y_right = y_right
        self.thickness = thickness

    @classmethod
    def horizontal(cls, y, x_left, x_right, thickness):
        return cls(x_left, y, x_right, y, thickness)

    @property
    def slope(self):
        if self.x_right == self.x_left:
            return 0.0
        return (self.y_right - self.y_left) / (self.x_right - self.x_left)

    def y_at(self, x):
        """Ordinate of the line center at abscissa ``x`` (extrapolated past the ends)."""
        return int(round(self.y_left + (x - self.x_left) * self.slope))

    def __repr__(self):
        return (f"LineInfo(({self.x_left},{self.y_left})-({self.x_right},{self.y_right})"
                f" t={self.thickness})")


class Staff:
    """A staff: its lines (top to bottom) and its current abscissa range.

    The abscissa range starts as the extent of the long line filaments and is
    later refined by the projector (see ``ends.refine_right_end``).
    """

    def __init__(self, id, lines, left=None, right=None):
        if not lines:
            raise ValueError(f"Staff#{id} has no lines")
        self.id = id
        self.lines = list(lines)
        self._abscissae = {
            HorizontalSide.LEFT: left if left is not None else min(l.x_left for l in self.lines),
            HorizontalSide.RIGHT: right if right is not None else max(l.x_right for l in self.lines),
        }

    @property
    def first_line(self):
        return self.lines[0]

    @property
    def last_line(self):
        return self.lines[-1]

    def get_abscissa(self, side):
        if side not in self._abscissae:
            raise ValueError(f"Invalid side: {side!r}")
        return self._abscissae[side]

    def set_abscissa(self, side, x):
        if side not in self._abscissae:
            raise ValueError(f"Invalid side: {side!r}")
        self._abscissae[side] = int(x)

    def __repr__(self):
        return (f"Staff#{self.id}[{self.get_abscissa(HorizontalSide.LEFT)}"
                f"..{self.get_abscissa(HorizontalSide.RIGHT)}]")


class Sheet:
    """Binarized page (ink = 255) with its scale and skew."""

    def __init__(self, binary, scale, skew=None):
        self.binary = np.asarray(binary)
        self.scale = scale
        self.skew = skew if skew is not None else Skew()

