"""Visual debugging of staff projections.

Can be used as a reporting hook for ``StaffProjector`` or run directly:
    python -m staffpeaks.plot [image_or_pdf] [page_num] [--no-plot] [--debug]

The plot only consumes series already computed by the projector; matplotlib
is imported lazily so that the core never depends on it.
"""

import logging
import sys

import numpy as np

from .filaments import BarFilamentBuilder, FilamentIndex
from .graph import PeakGraph
from .projector import project_staves
from .sheet import Sheet
from .sources import detect_staves, estimate_scale, extract_vertical_sections, load_binary

logger = logging.getLogger(__name__)

LEVEL_COLORS = {
    "Der+": "blue",
    "Der-": "blue",
    "StaffHeight": "black",
    "MinBar": "green",
    "MaxChunk": "gold",
    "MinBrace": "orange",
    "Lines": "magenta",
    "NoStaff": "cyan",
}


def plot_projection(series, show=True):
    """Chart of one staff projection: cumuls, derivatives and threshold levels."""
    import matplotlib
    if show:
        matplotlib.use('TkAgg')
    import matplotlib.pyplot as plt

    values = series["values"]
    x_axis = np.arange(len(values))

    fig, ax = plt.subplots(figsize=(20, 6))
    ax.plot(x_axis, values, 'r-', linewidth=0.7, label='Cumuls')
    ax.plot(x_axis, series["derivatives"], 'b-', linewidth=0.5, label='Derivatives')

    for name, level in series["levels"].items():
        ax.axhline(level, color=LEVEL_COLORS.get(name, 'gray'), linewidth=0.8,
                   linestyle='--', label=name)
    ax.axhline(0, color='lightgray', linewidth=0.5)

    for start, stop in series.get("peaks", []):
        ax.axvspan(start, stop + 1, color='green', alpha=0.3)
    for start, stop in series.get("blanks", []):
        ax.axvspan(start, stop + 1, color='cyan', alpha=0.1)

    ax.set_title(series.get("title", "projection"))
    ax.set_xlabel("Abscissae")
    ax.set_ylabel("Counts")
    ax.legend(fontsize=8, loc='upper right')
    plt.tight_layout()
    if show:
        plt.show()
    return fig


# ---------------------------------------------------------------------------
# Full pipeline
# ---------------------------------------------------------------------------

def analyze(source, page_num=0, max_workers=1):
    """Load a page, find its staves and run every staff projector on it.

    Returns a dict with:
        binary, scale, staves, projectors, braces, filaments.
    """
    binary = load_binary(source, page_num)
    staves = detect_staves(binary)
    if not staves:
        raise ValueError(f"No staff found in {source}")

    sheet = Sheet(binary, estimate_scale(staves))
    graph = PeakGraph()
    projectors = project_staves(sheet, staves, graph, max_workers=max_workers)

    braces = {}
    for projector in projectors:
        projector.refine_right_end()
        if projector.peaks:
            brace = projector.find_brace_peak(0, projector.peaks[0].start)
            if brace is not None:
                projector.brace_peak = brace
                braces[projector.staff.id] = brace

    index = FilamentIndex()
    builder = BarFilamentBuilder(index)
    sections = extract_vertical_sections(binary)
    extension = sheet.scale.interline
    filaments = {}
    for projector in projectors:
        for peak in projector.peaks:
            filament = builder.build_filament(peak, extension, sections)
            if filament is not None:
                filaments[peak] = filament

    return {
        "binary": binary,
        "scale": sheet.scale,
        "staves": staves,
        "graph": graph,
        "projectors": projectors,
        "braces": braces,
        "filaments": filaments,
    }


def _print_summary(result, label):
    """Print detection summary to stdout."""
    print(f"\n{label}: {result['scale']}")
    for projector in result["projectors"]:
        staff = projector.staff
        print(f"  {staff}: {len(projector.peaks)} peaks")
        for peak in projector.peaks:
            filament = result["filaments"].get(peak)
            tag = f" -> {filament}" if filament is not None else ""
            print(f"    {peak}{tag}")
        brace = result["braces"].get(staff.id)
        if brace is not None:
            print(f"    brace {brace}")


def main():
    """Usage: python -m staffpeaks.plot [image_or_pdf] [page_num] [--no-plot] [--debug]

    Examples:
        python -m staffpeaks.plot score.png                 # single image
        python -m staffpeaks.plot score.pdf 3               # page 3 (0-based)
        python -m staffpeaks.plot score.pdf 0 --no-plot     # summary only
    """
    args = [a for a in sys.argv[1:] if not a.startswith('--')]
    no_plot = '--no-plot' in sys.argv
    logging.basicConfig(level=logging.DEBUG if '--debug' in sys.argv else logging.INFO)

    if not args:
        print(main.__doc__)
        return 1

    source = args[0]
    page_num = int(args[1]) if len(args) > 1 else 0
    result = analyze(source, page_num=page_num)
    _print_summary(result, source)
    if not no_plot:
        for projector in result["projectors"]:
            plot_projection(projector.series())
    return 0


if __name__ == "__main__":
    sys.exit(main())
