"""LandPool: parcel geometry, neighbour discovery and land integration agreements."""

__version__ = "0.1.0"
