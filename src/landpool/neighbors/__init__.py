"""Neighbour discovery over opted-in parcels."""

from landpool.neighbors.finder import NeighborCandidate, NeighborFinder

__all__ = ["NeighborCandidate", "NeighborFinder"]
