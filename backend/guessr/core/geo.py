"""Coordinate helpers: great-circle distance, grid hashing, bounds."""

from __future__ import annotations

import math

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.0
GRID_PRECISION = 3  # 3 decimals ≈ 111 m cells

# Global acceptance box for curated and minted coordinates (Türkiye)
BOUNDS = {"min_lat": 35.8, "max_lat": 42.2, "min_lng": 25.5, "max_lng": 45.0}


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in km."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def location_hash(lat: float, lng: float) -> str:
    """Grid cell key for a coordinate.

    Examples:
        location_hash(41.0086, 28.9802) → "41.009_28.980"
        location_hash(41.0, 29.0) → "41.000_29.000"
    """
    return f"{lat:.{GRID_PRECISION}f}_{lng:.{GRID_PRECISION}f}"


def cluster_id(region: str, loc_hash: str) -> str:
    return f"{region}__{loc_hash}"


def within_bounds(lat: float, lng: float) -> bool:
    return (
        BOUNDS["min_lat"] <= lat <= BOUNDS["max_lat"]
        and BOUNDS["min_lng"] <= lng <= BOUNDS["max_lng"]
    )


def offset_coordinate(lat: float, lng: float, distance_km: float, angle_rad: float) -> tuple[float, float]:
    """Move a point by a polar offset using a local equirectangular approximation."""
    lat_offset = (distance_km * math.cos(angle_rad)) / KM_PER_DEGREE
    lng_offset = (distance_km * math.sin(angle_rad)) / (KM_PER_DEGREE * math.cos(math.radians(lat)))
    return lat + lat_offset, lng + lng_offset


def local_distance_km(lat: float, lng: float, center_lat: float, center_lng: float) -> float:
    """Equirectangular distance, accurate enough inside a few-km seed disk."""
    d_lat = (lat - center_lat) * KM_PER_DEGREE
    d_lng = (lng - center_lng) * KM_PER_DEGREE * math.cos(math.radians(center_lat))
    return math.sqrt(d_lat * d_lat + d_lng * d_lng)
