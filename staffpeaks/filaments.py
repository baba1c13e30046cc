"""Filaments for bar, bracket and brace peaks.

A peak is only an abscissa range on the staff projection. To get the actual
glyph we gather the pixel sections lying under the peak (a bit beyond the
staff height, where brackets and braces end) and merge them into one
connected shape.

Sections come from a large pool, sorted by abscissa, that was built once
for the whole sheet. ``extract_vertical_sections`` in ``sources`` builds one
from a binarized page.
"""

import logging
import threading

import cv2 as cv
import numpy as np

from .sheet import Orientation

logger = logging.getLogger(__name__)


def grow_box(box, dx, dy):
    """Enlarge an (x, y, w, h) box by dx on left and right, dy on top and bottom."""
    x, y, w, h = box
    return (x - dx, y - dy, w + 2 * dx, h + 2 * dy)


def boxes_intersect(a, b):
    ax, ay, aw, ah = a
    bx, by, bw, bh = b
    if aw <= 0 or ah <= 0 or bw <= 0 or bh <= 0:
        return False
    return ax < bx + bw and bx < ax + aw and ay < by + bh and by < ay + ah


class Section:
    """A run-length pixel group: bounding box plus optional pixel mask.

    Without mask, the whole box is foreground (e.g. a single column run).
    """

    def __init__(self, x, y, width, height, mask=None):
        self.bounds = (int(x), int(y), int(width), int(height))
        if mask is not None and np.shape(mask) != (height, width):
            raise ValueError(f"Mask shape {np.shape(mask)} does not match {width}x{height} section")
        self.mask = mask

    @property
    def x(self):
        return self.bounds[0]

    def length(self, orientation):
        """Extension along the given orientation."""
        if orientation is Orientation.HORIZONTAL:
            return self.bounds[2]
        return self.bounds[3]

    def paint(self, canvas, origin):
        """Draw this section (255) onto ``canvas`` whose top-left is ``origin``."""
        x, y, w, h = self.bounds
        x0 = x - origin[0]
        y0 = y - origin[1]
        region = canvas[y0:y0 + h, x0:x0 + w]
        if self.mask is None:
            region[:] = 255
        else:
            region[np.asarray(self.mask, dtype=bool)] = 255

    def __repr__(self):
        return "Section(x={}, y={}, w={}, h={})".format(*self.bounds)


class Filament:
    """Connected shape merged from sections."""

    def __init__(self, sections, bounds, mask):
        self.id = None
        self.sections = list(sections)
        self.bounds = bounds
        self.mask = mask

    @property
    def weight(self):
        return int(np.count_nonzero(self.mask))

    def __repr__(self):
        return f"Filament#{self.id}{self.bounds} sections:{len(self.sections)}"


class BarFilamentFactory:
    """Merge sections into the connected shape that best covers a peak.

    Sections are drawn on a canvas, connected components are labeled with
    8-connectivity and the component sharing the most pixels with the peak
    box wins. Sections outside that component are left out.
    """

    def __init__(self, connectivity=8):
        self.connectivity = connectivity

    def build_bar_filament(self, sections, peak_box):
        if not sections:
            return None

        x_min = min(s.bounds[0] for s in sections)
        y_min = min(s.bounds[1] for s in sections)
        x_max = max(s.bounds[0] + s.bounds[2] for s in sections)
        y_max = max(s.bounds[1] + s.bounds[3] for s in sections)
        canvas = np.zeros((y_max - y_min, x_max - x_min), dtype=np.uint8)
        for section in sections:
            section.paint(canvas, (x_min, y_min))

        num_labels, labels, stats, _ = cv.connectedComponentsWithStats(
            canvas, connectivity=self.connectivity
        )

        # Peak box clipped to the canvas
        px, py, pw, ph = peak_box
        c0 = max(px - x_min, 0)
        c1 = min(px + pw - x_min, canvas.shape[1])
        r0 = max(py - y_min, 0)
        r1 = min(py + ph - y_min, canvas.shape[0])
        if c1 <= c0 or r1 <= r0:
            return None

        overlap = np.bincount(labels[r0:r1, c0:c1].ravel(), minlength=num_labels)
        overlap[0] = 0  # background
        best = int(np.argmax(overlap))
        if overlap[best] == 0:
            return None

        kept = [s for s in sections if self._label_of(s, labels, (x_min, y_min)) == best]
        left = int(stats[best, cv.CC_STAT_LEFT])
        top = int(stats[best, cv.CC_STAT_TOP])
        width = int(stats[best, cv.CC_STAT_WIDTH])
        height = int(stats[best, cv.CC_STAT_HEIGHT])
        mask = labels[top:top + height, left:left + width] == best

        return Filament(kept, (left + x_min, top + y_min, width, height), mask)

    @staticmethod
    def _label_of(section, labels, origin):
        x, y, w, h = section.bounds
        region = labels[y - origin[1]:y - origin[1] + h, x - origin[0]:x - origin[0] + w]
        if section.mask is not None:
            region = region[np.asarray(section.mask, dtype=bool)]
        found = region[region > 0]
        return int(found[0]) if found.size else 0


class FilamentIndex:
    """Sheet-wide registry of filaments, each registered at most once."""

    def __init__(self):
        self._lock = threading.Lock()
        self._filaments = {}
        self._next_id = 1

    def register(self, filament):
        """Assign an id to ``filament`` and store it. Returns the id."""
        with self._lock:
            if filament.id is not None and self._filaments.get(filament.id) is filament:
                return filament.id
            filament.id = self._next_id
            self._next_id += 1
            self._filaments[filament.id] = filament
            return filament.id

    def get(self, id):
        with self._lock:
            return self._filaments.get(id)

    def __len__(self):
        with self._lock:
            return len(self._filaments)

    def __iter__(self):
        with self._lock:
            return iter(list(self._filaments.values()))


class BarFilamentBuilder:
    """Build a bar/bracket/brace filament out of the sections lying under a peak.

    Args:
        index: ``FilamentIndex`` receiving the built filaments.
        factory: merging factory, ``BarFilamentFactory()`` by default.
    """

    def __init__(self, index, factory=None):
        self.index = index
        self.factory = factory if factory is not None else BarFilamentFactory()

    def select_sections(self, peak, vertical_extension, all_sections):
        """Sections intersecting the peak box grown vertically, no wider than the peak.

        ``all_sections`` must be sorted by abscissa: the scan stops at the
        first section lying entirely right of the grown box.
        """
        peak_box = grow_box(peak.bounds, 0, vertical_extension)
        x_break = peak_box[0] + peak_box[2]
        max_section_width = peak.width
        sections = []

        for section in all_sections:
            if boxes_intersect(section.bounds, peak_box):
                if section.length(Orientation.HORIZONTAL) <= max_section_width:
                    sections.append(section)
            elif section.x >= x_break:
                break  # Since all_sections are sorted by abscissa

        return sections

    def build_filament(self, peak, vertical_extension, all_sections):
        """Build and register the filament of ``peak``.

        Args:
            peak: the ``StaffPeak`` to process.
            vertical_extension: margin beyond staff height, to reach bracket
                or brace ends.
            all_sections: large pre-filtered pool, sorted by abscissa.

        Returns:
            the ``Filament`` built, or None.
        """
        sections = self.select_sections(peak, vertical_extension, all_sections)
        filament = self.factory.build_bar_filament(sections, peak.bounds)

        if filament is None:
            logger.debug("%s no filament from %d sections", peak, len(sections))
            return None

        self.index.register(filament)
        return filament
