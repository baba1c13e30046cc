"""Shared peak graph."""

from concurrent.futures import ThreadPoolExecutor

from staffpeaks.graph import PeakGraph
from staffpeaks.peaks import StaffPeak

from helpers import two_line_staff


def make_peaks(count):
    staff = two_line_staff(10 * count + 10)
    return [StaffPeak(staff, 5, 11, 10 * i, 10 * i + 2) for i in range(count)]


def test_add_and_remove():
    graph = PeakGraph()
    first, second = make_peaks(2)

    assert graph.add_vertex(first)
    assert not graph.add_vertex(first)
    assert graph.add_vertex(second)
    assert len(graph) == 2
    assert graph.vertices() == [first, second]

    assert graph.remove_vertex(first)
    assert not graph.remove_vertex(first)
    assert first not in graph
    assert list(graph) == [second]


def test_concurrent_adds():
    graph = PeakGraph()
    peaks = make_peaks(200)
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(graph.add_vertex, peaks + peaks))

    assert results.count(True) == 200
    assert len(graph) == 200
