"""Generation lineage: threads, runs and the node forest."""

from .store import InMemoryLineageStore, LineageStore
from .tracker import GenerationRun, LineageTracker
from .tree import LineageTree

__all__ = [
    "GenerationRun",
    "InMemoryLineageStore",
    "LineageStore",
    "LineageTracker",
    "LineageTree",
]
