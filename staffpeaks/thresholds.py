"""Pixel thresholds for one staff projection.

Thresholds are built in two steps:
    1. ``ScaleThresholds.from_scale``: everything that only depends on the
       sheet interline.
    2. ``ScaleThresholds.for_staff``: adds the thresholds that depend on the
       measured thickness of this staff's lines, giving the final
       ``ThresholdParameters``.

Both results are immutable namedtuples.
"""

import logging
from collections import namedtuple

from . import constants

logger = logging.getLogger(__name__)

_SCALE_FIELDS = tuple(constants.SCALE_FRACTIONS)
_STAFF_FIELDS = ("lines_threshold", "blank_threshold", "chunk_threshold")

ThresholdParameters = namedtuple("ThresholdParameters", _SCALE_FIELDS + _STAFF_FIELDS)


class ScaleThresholds(namedtuple("ScaleThresholds", _SCALE_FIELDS)):
    """Scale-dependent thresholds, in pixels."""

    __slots__ = ()

    @classmethod
    def from_scale(cls, scale, **overrides):
        """Convert the interline fractions of ``constants`` to pixels.

        Keyword arguments override a fraction by field name, e.g.
        ``from_scale(scale, bar_threshold=3.0)``.
        """
        unknown = set(overrides) - set(_SCALE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown threshold names: {sorted(unknown)}")
        fractions = dict(constants.SCALE_FRACTIONS, **overrides)
        return cls(**{name: scale.to_pixels(fractions[name]) for name in _SCALE_FIELDS})

    def for_staff(self, staff, scale, blank_ratio=constants.BLANK_THRESHOLD,
                  chunk_fraction=constants.CHUNK_THRESHOLD):
        """Complete the thresholds using the actual line thicknesses of ``staff``.

        Line thickness is measured on long filaments only, so holes in the
        lines make it slightly under-estimated.
        """
        lines_cumul = sum(line.thickness for line in staff.lines)
        line_thickness = lines_cumul / len(staff.lines)
        logger.debug("Staff#%s linesHeight: %s", staff.id, lines_cumul)

        params = ThresholdParameters(
            *self,
            lines_threshold=int(round(lines_cumul)),
            blank_threshold=int(round(blank_ratio * line_thickness)),
            chunk_threshold=4 * scale.max_fore + scale.to_pixels(chunk_fraction),
        )
        logger.debug(
            "Staff#%s linesThreshold:%d chunkThreshold:%d",
            staff.id, params.lines_threshold, params.chunk_threshold,
        )
        return params


def staff_thresholds(scale, staff, **overrides):
    """Both building steps at once."""
    return ScaleThresholds.from_scale(scale, **overrides).for_staff(staff, scale)
