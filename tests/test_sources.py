"""Page loading, straight staff detection and the section pool."""

import fitz
import numpy as np
import pytest

from staffpeaks.plot import analyze
from staffpeaks.sheet import HorizontalSide
from staffpeaks.sources import (
    binarize,
    detect_staves,
    estimate_scale,
    extract_vertical_sections,
    load_binary,
    load_image,
)

from helpers import BARS, staff_image


@pytest.fixture
def binary():
    return staff_image()


def test_binarize_inverts_ink():
    gray = 255 - staff_image()
    binary = binarize(gray)
    assert binary[20, 50] == 255
    assert binary[25, 50] == 0
    assert np.array_equal(binary, staff_image())


def test_load_image():
    img = np.zeros((4, 4), dtype=np.uint8)
    assert load_image(img) is img
    color = np.full((4, 6, 3), 255, dtype=np.uint8)
    assert load_image(color).shape == (4, 6)
    with pytest.raises(FileNotFoundError):
        load_image("does/not/exist.png")


@pytest.fixture
def pdf_path(tmp_path):
    path = tmp_path / "page.pdf"
    doc = fitz.open()
    page = doc.new_page(width=200, height=100)
    page.draw_rect(fitz.Rect(20, 20, 60, 80), color=(0, 0, 0), fill=(0, 0, 0))
    doc.save(str(path))
    doc.close()
    return path


def test_load_pdf_page(pdf_path):
    # 72 dpi: one pixel per point
    gray = load_image(pdf_path, dpi=72)
    assert gray.shape == (100, 200)
    assert gray[50, 40] < 128
    assert gray[5, 5] > 128

    binary = load_binary(pdf_path, dpi=72)
    assert binary[50, 40] == 255
    assert binary[5, 5] == 0

    with pytest.raises(ValueError, match="out of range"):
        load_image(pdf_path, page_num=1)


def test_detect_staves(binary):
    staves = detect_staves(binary)
    assert len(staves) == 1

    staff = staves[0]
    assert staff.id == 1
    assert [line.y_left for line in staff.lines] == [20, 30, 40, 50, 60]
    assert all(line.thickness == 2 for line in staff.lines)
    assert staff.get_abscissa(HorizontalSide.LEFT) == 30
    assert staff.get_abscissa(HorizontalSide.RIGHT) == 269


def test_detect_two_staves():
    staves = detect_staves(staff_image(tops=(20, 120)))
    assert [s.id for s in staves] == [1, 2]
    assert staves[1].first_line.y_left == 120


def test_no_staff_on_blank_page():
    assert detect_staves(np.zeros((50, 50), dtype=np.uint8)) == []


def test_estimate_scale(binary):
    scale = estimate_scale(detect_staves(binary))
    assert scale.interline == 10
    assert scale.main_fore == 2
    assert scale.max_fore == 2
    with pytest.raises(ValueError):
        estimate_scale([])


def test_extract_vertical_sections():
    img = np.zeros((10, 3), dtype=np.uint8)
    img[1:3, 0] = 255
    img[5:9, 0] = 255
    img[0:10, 2] = 255

    sections = extract_vertical_sections(img)
    assert [s.bounds for s in sections] == [(0, 1, 1, 2), (0, 5, 1, 4), (2, 0, 1, 10)]
    assert [s.bounds for s in extract_vertical_sections(img, min_length=3)] == [
        (0, 5, 1, 4), (2, 0, 1, 10)]


def test_analyze_synthetic_page():
    result = analyze(255 - staff_image())

    assert len(result["staves"]) == 1
    projector = result["projectors"][0]
    assert [(p.start, p.stop) for p in projector.peaks] == list(BARS)
    assert len(result["graph"]) == 3
    assert result["braces"] == {}
    assert len(result["filaments"]) == 3
    assert projector.staff.get_abscissa(HorizontalSide.RIGHT) == 269

    filament = result["filaments"][projector.peaks[1]]
    x, y, width, height = filament.bounds
    assert (x, width) == (200, 6)
    assert y == 20


def test_analyze_blank_page():
    with pytest.raises(ValueError, match="No staff"):
        analyze(np.full((50, 50), 255, dtype=np.uint8))
