"""Brace lookup on the left of a bar."""

import numpy as np
import pytest

from staffpeaks.blanks import Blank, find_all_blanks, select_ending_blanks
from staffpeaks.braces import BraceDetector
from staffpeaks.peaks import PeakAttribute
from staffpeaks.projection import Projection

from helpers import make_params, small_sheet, two_line_staff

# blank | brace | valley | bar | blank
BRACE_PROFILE = [0, 0, 0, 0, 0, 2, 4, 4, 4, 4, 2, 2, 2, 8, 8, 0, 0, 0, 0, 0]

# Same shape, but the left blank ends on a slope going down to the left
SLOPED_PROFILE = [0, 0, 0, 1, 2, 3, 5, 5, 5, 5, 3, 3, 3, 9, 9, 0, 0, 0, 0, 0]


def make_detector(counts, **params):
    params = make_params(**params)
    projection = Projection(counts)
    staff = two_line_staff(len(counts), left=5, right=14)
    blanks = find_all_blanks(projection, params.blank_threshold)
    ending = select_ending_blanks(blanks, staff, params.min_wide_blank_width)
    sheet = small_sheet(np.zeros((20, len(counts)), dtype=np.uint8))
    return BraceDetector(sheet, staff, projection, params, blanks, ending)


def test_brace_found_left_of_bar():
    detector = make_detector(BRACE_PROFILE)
    assert detector.blanks == [Blank(0, 4), Blank(15, 19)]

    brace = detector.find_brace_peak(0, 13)

    assert brace is not None
    # Left bound on the blank, right bound at the lowest valley point
    assert (brace.start, brace.stop) == (4, 10)
    assert brace.is_set(PeakAttribute.BRACE)
    assert brace.grade is None
    assert brace.deskewed_center is not None


def test_brace_left_bound_descends_slope():
    detector = make_detector(SLOPED_PROFILE, blank_threshold=2, brace_threshold=4)
    brace = detector.find_brace_peak(0, 13)
    assert (brace.start, brace.stop) == (2, 10)


def test_no_valley_no_brace():
    counts = [0, 0, 0, 0, 0, 8, 8, 8, 8, 8, 8, 8, 8, 8, 8, 0, 0, 0, 0, 0]
    detector = make_detector(counts)
    assert detector.find_brace_peak(0, 13) is None


def test_min_left_limits_scan():
    detector = make_detector(BRACE_PROFILE)
    # Scan stops at x=8, inside the brace: the plateau is never closed
    assert detector.find_brace_peak(8, 13) is None


def test_no_left_blank_no_brace():
    detector = make_detector(BRACE_PROFILE)
    detector.blanks = []
    assert detector.create_brace_peak(6, 9, 13) is None


@pytest.mark.parametrize("max_right", [12, 13, 14])
def test_brace_stop_is_first_lowest_point(max_right):
    detector = make_detector(BRACE_PROFILE)
    brace = detector.create_brace_peak(6, 9, max_right)
    assert brace.stop == 10
