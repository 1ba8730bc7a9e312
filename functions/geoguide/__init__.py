"""
GeoGuide backend package.

A FastAPI service for authoring and playing back geo-located tours, with
swappable persistence (memory, JSON file, Firestore) and media storage
(local disk, GCS, S3-compatible) chosen at startup.
"""

__version__ = "0.1.0"
