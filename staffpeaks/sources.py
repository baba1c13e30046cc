"""Page loading and the sheet-level inputs of the staff projector.

Can be used to feed ``StaffProjector`` from an image or a PDF page:
    1. Load as grayscale (OpenCV, or PyMuPDF for PDF pages) and binarize
    2. Find straight 5-line staves on the horizontal projection
    3. Estimate the sheet scale from them
    4. Cut the page into vertical column runs (the section pool)

Staff detection here is deliberately simple (straight, unbroken staves);
real staff geometry comes from a dedicated line detector.
"""

import logging

import cv2 as cv
import fitz  # PyMuPDF
import numpy as np
from scipy.signal import find_peaks

from .filaments import Section
from .sheet import LineInfo, Scale, Staff

logger = logging.getLogger(__name__)

DEFAULT_DPI = 300


# ---------------------------------------------------------------------------
# Step 1 — Load and binarize
# ---------------------------------------------------------------------------

def _render_pdf_page(pdf_path, page_num, dpi):
    """One PDF page rendered by PyMuPDF as a grayscale array."""
    with fitz.open(pdf_path) as doc:
        if page_num < 0 or page_num >= len(doc):
            raise ValueError(f"Page {page_num} out of range (PDF has {len(doc)} pages)")
        pix = doc[page_num].get_pixmap(dpi=dpi, colorspace=fitz.csGRAY, alpha=False)
        return np.frombuffer(pix.samples, dtype=np.uint8).reshape(pix.height, pix.width)


def load_image(source, page_num=0, dpi=DEFAULT_DPI):
    """Grayscale page from a numpy array, a PDF page or an image file.

    Color arrays are converted to gray, gray arrays are returned as is.
    """
    if isinstance(source, np.ndarray):
        img = source
    elif str(source).lower().endswith(".pdf"):
        img = _render_pdf_page(source, page_num, dpi)
    else:
        img = cv.imread(str(source), cv.IMREAD_GRAYSCALE)
        if img is None:
            raise FileNotFoundError(f"Could not load: {source}")

    if img.ndim == 3:
        img = cv.cvtColor(img, cv.COLOR_BGR2GRAY)
    return img


def binarize(img):
    """Ink = 255, paper = 0, with Otsu choosing the gray level in between."""
    if img.ndim == 3:
        img = cv.cvtColor(img, cv.COLOR_BGR2GRAY)
    _, binary = cv.threshold(img, 0, 255, cv.THRESH_BINARY_INV | cv.THRESH_OTSU)
    return binary


def load_binary(source, page_num=0, dpi=DEFAULT_DPI):
    """``load_image`` then ``binarize``: the raster a ``Sheet`` is built on."""
    return binarize(load_image(source, page_num, dpi))


# ---------------------------------------------------------------------------
# Step 2 — Straight staves
# ---------------------------------------------------------------------------

def _line_thickness(projection, y, ratio=0.5):
    """Rows around ``y`` whose ink count stays above ``ratio`` of the peak count."""
    level = projection[y] * ratio
    top = y
    while top > 0 and projection[top - 1] >= level:
        top -= 1
    bottom = y
    while bottom < len(projection) - 1 and projection[bottom + 1] >= level:
        bottom += 1
    return bottom - top + 1


def _line_extent(binary, ys, thickness, min_lines=3):
    """First and last columns where at least ``min_lines`` of the lines have ink."""
    half = max(thickness // 2, 0)
    hits = np.zeros(binary.shape[1], dtype=np.int32)
    for y in ys:
        band = binary[max(y - half, 0):y + half + 1, :] > 0
        hits += np.any(band, axis=0)
    columns = np.flatnonzero(hits >= min_lines)
    if columns.size == 0:
        return None
    return int(columns[0]), int(columns[-1])


def detect_staves(binary, expected_lines=5, min_prominence_ratio=0.3):
    """Find straight staves as regular groups of ``expected_lines`` projection peaks.

    Args:
        binary: ink=255 image from binarize().
        expected_lines: number of lines per staff.
        min_prominence_ratio: minimum peak prominence, as a fraction of the
            highest row count.

    Returns:
        list of ``sheet.Staff``, top to bottom, ids starting at 1.
    """
    projection = np.sum(binary > 0, axis=1).astype(np.float64)
    if not projection.any():
        return []

    peaks, _ = find_peaks(projection, prominence=projection.max() * min_prominence_ratio)
    if len(peaks) < expected_lines:
        return []

    gaps = np.diff(peaks)
    typical_spacing = np.sort(gaps)[max(0, len(gaps) // 4)]

    # Consecutive peaks with regular spacing
    groups = [[peaks[0]]]
    for gap, y in zip(gaps, peaks[1:]):
        if gap <= typical_spacing * 1.5:
            groups[-1].append(y)
        else:
            groups.append([y])

    staves = []
    for group in groups:
        if len(group) != expected_lines:
            logger.debug("Skipping group of %d lines at y=%d", len(group), group[0])
            continue
        thicknesses = [_line_thickness(projection, y) for y in group]
        extent = _line_extent(binary, group, max(thicknesses))
        if extent is None:
            continue
        left, right = extent
        lines = [LineInfo.horizontal(int(y), left, right, t) for y, t in zip(group, thicknesses)]
        staves.append(Staff(len(staves) + 1, lines, left, right))

    logger.info("Detected %d staves", len(staves))
    return staves


# ---------------------------------------------------------------------------
# Step 3 — Scale
# ---------------------------------------------------------------------------

def estimate_scale(staves):
    """Interline = median line spacing; main/max line thickness from the lines."""
    if not staves:
        raise ValueError("Cannot estimate scale without staves")
    spacings = []
    thicknesses = []
    for staff in staves:
        ys = [line.y_left for line in staff.lines]
        spacings.extend(np.diff(ys))
        thicknesses.extend(line.thickness for line in staff.lines)
    return Scale(
        interline=int(round(np.median(spacings))),
        main_fore=int(round(np.median(thicknesses))),
        max_fore=int(max(thicknesses)),
    )


# ---------------------------------------------------------------------------
# Step 4 — Section pool
# ---------------------------------------------------------------------------

def extract_vertical_sections(binary, min_length=1):
    """Cut every column into vertical ink runs, one ``Section`` per run.

    Returns:
        list of sections sorted by abscissa (then ordinate).
    """
    ink = binary > 0
    h, w = ink.shape[:2]
    sections = []
    for x in range(w):
        column = np.concatenate(([0], ink[:, x].astype(np.int8), [0]))
        edges = np.flatnonzero(np.diff(column))
        for y_start, y_stop in zip(edges[0::2], edges[1::2]):
            if y_stop - y_start >= min_length:
                sections.append(Section(x, y_start, 1, y_stop - y_start))
    return sections
