"""Sheet-wide graph of staff peaks.

Peaks are linked across staves by alignment and connection edges, which are
computed by the bar line analysis downstream. The projector only adds and
removes vertices, so this class exposes just that, plus a few read-only
helpers. All mutations go through one lock so that staves can be projected
from several threads against the same graph.
"""

import threading


class PeakGraph:
    """Thread-safe set of peak vertices, kept in insertion order."""

    def __init__(self):
        self._lock = threading.Lock()
        self._vertices = {}

    def add_vertex(self, peak):
        """Add ``peak``; returns False if it was already there."""
        with self._lock:
            if peak in self._vertices:
                return False
            self._vertices[peak] = None
            return True

    def remove_vertex(self, peak):
        """Remove ``peak``; returns False if it was not there."""
        with self._lock:
            if peak not in self._vertices:
                return False
            del self._vertices[peak]
            return True

    def __contains__(self, peak):
        with self._lock:
            return peak in self._vertices

    def __len__(self):
        with self._lock:
            return len(self._vertices)

    def vertices(self):
        """Snapshot list of the current vertices."""
        with self._lock:
            return list(self._vertices)

    def __iter__(self):
        return iter(self.vertices())
