"""Section selection under a peak and filament merging."""

import numpy as np
import pytest

from staffpeaks.filaments import (
    BarFilamentBuilder,
    BarFilamentFactory,
    FilamentIndex,
    Section,
    boxes_intersect,
    grow_box,
)
from staffpeaks.peaks import StaffPeak
from staffpeaks.sheet import Orientation

from helpers import two_line_staff

# Peak box (20, 10, 3, 21); grown by 5 it covers y 5..35, x 20..22
A = Section(5, 0, 1, 40)      # far left
B = Section(15, 12, 10, 2)    # crosses the box but wider than the peak
C = Section(20, 8, 1, 25)     # inside
D = Section(21, 0, 1, 4)      # above the grown box
E = Section(22, 3, 1, 10)     # reaches into the grown box only
F = Section(23, 10, 1, 5)     # first section right of the box
H = Section(21, 10, 1, 5)     # would match, but comes after F
POOL = [A, B, C, D, E, F, H]


@pytest.fixture
def peak():
    return StaffPeak(two_line_staff(50), 10, 30, 20, 22)


class RecordingFactory:
    def __init__(self, result=None):
        self.result = result
        self.calls = []

    def build_bar_filament(self, sections, bounds):
        self.calls.append((list(sections), bounds))
        return self.result


def test_geometry_helpers():
    assert grow_box((20, 10, 3, 21), 0, 5) == (20, 5, 3, 31)
    assert boxes_intersect((0, 0, 2, 2), (1, 1, 2, 2))
    assert not boxes_intersect((0, 0, 2, 2), (2, 0, 2, 2))
    assert C.length(Orientation.HORIZONTAL) == 1
    assert C.length(Orientation.VERTICAL) == 25


def test_select_sections(peak):
    builder = BarFilamentBuilder(FilamentIndex())
    assert builder.select_sections(peak, 5, POOL) == [C, E]


def test_select_sections_without_extension(peak):
    builder = BarFilamentBuilder(FilamentIndex())
    assert builder.select_sections(peak, 0, POOL) == [C, E]
    assert builder.select_sections(peak, 0, [E]) == [E]
    assert builder.select_sections(peak, 0, [Section(22, 0, 1, 10)]) == []


def test_factory_receives_ungrown_peak_bounds(peak):
    factory = RecordingFactory()
    index = FilamentIndex()
    builder = BarFilamentBuilder(index, factory)

    assert builder.build_filament(peak, 5, POOL) is None
    assert factory.calls == [([C, E], (20, 10, 3, 21))]
    assert len(index) == 0


def test_build_filament_keeps_component_under_peak(peak):
    index = FilamentIndex()
    builder = BarFilamentBuilder(index)
    filament = builder.build_filament(peak, 5, POOL)

    # C and E are not connected: C covers most of the peak box
    assert filament.sections == [C]
    assert filament.bounds == (20, 8, 1, 25)
    assert filament.weight == 25
    assert filament.id == 1
    assert index.get(1) is filament


def test_build_filament_merges_connected_sections(peak):
    J = Section(21, 10, 1, 20)
    pool = [C, J, E]
    filament = BarFilamentBuilder(FilamentIndex()).build_filament(peak, 5, pool)

    assert filament.sections == [C, J, E]
    assert filament.bounds == (20, 3, 3, 30)


def test_no_section_no_filament(peak):
    index = FilamentIndex()
    assert BarFilamentBuilder(index).build_filament(peak, 5, [A, F]) is None
    assert len(index) == 0


def test_factory_ignores_shapes_off_the_peak():
    factory = BarFilamentFactory()
    assert factory.build_bar_filament([Section(0, 0, 1, 5)], (10, 10, 2, 2)) is None


def test_section_mask():
    mask = np.array([[1, 0], [0, 1]], dtype=bool)
    section = Section(0, 0, 2, 2, mask=mask)
    filament = BarFilamentFactory().build_bar_filament([section], (0, 0, 2, 2))
    assert filament.weight == 2  # diagonal pixels, 8-connected
    with pytest.raises(ValueError):
        Section(0, 0, 3, 2, mask=mask)


def test_index_registers_once():
    index = FilamentIndex()
    filament = BarFilamentFactory().build_bar_filament([C], C.bounds)
    first = index.register(filament)
    assert index.register(filament) == first
    assert len(index) == 1
    assert list(index) == [filament]
