"""
Map helpers: coordinate validation, viewport fitting, colour scales and
GeoJSON checks for point and choropleth maps.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from querycanvas.charts.models import ColorScale, MapPoint, ScaleType
from querycanvas.charts.utils import is_number

LatLng = Tuple[float, float]
Bounds = Tuple[LatLng, LatLng]

DEFAULT_COLOR_SCALES = {
    "sequential_blue": ColorScale(
        type=ScaleType.SEQUENTIAL,
        colors=["#f7fbff", "#deebf7", "#c6dbef", "#9ecae1", "#6baed6", "#4292c6", "#2171b5", "#08519c", "#08306b"],
        steps=9,
    ),
    "sequential_green": ColorScale(
        type=ScaleType.SEQUENTIAL,
        colors=["#f7fcf5", "#e5f5e0", "#c7e9c0", "#a1d99b", "#74c476", "#41ab5d", "#238b45", "#006d2c", "#00441b"],
        steps=9,
    ),
    "diverging_red_blue": ColorScale(
        type=ScaleType.DIVERGING,
        colors=["#b2182b", "#d6604d", "#f4a582", "#fddbc7", "#f7f7f7", "#d1e5f0", "#92c5de", "#4393c3", "#2166ac"],
        steps=9,
    ),
    "viridis": ColorScale(
        type=ScaleType.SEQUENTIAL,
        colors=["#440154", "#482878", "#3e4989", "#31688e", "#26828e", "#1f9e89", "#35b779", "#6ece58", "#b5de2b", "#fde724"],
        steps=10,
    ),
}


@dataclass(frozen=True)
class CoordinateValidation:
    is_valid: bool
    lat: Optional[float] = None
    lng: Optional[float] = None
    error: Optional[str] = None


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return float(value) if is_number(value) else None


def is_valid_latitude(lat: Any) -> bool:
    return is_number(lat) and not math.isnan(lat) and -90 <= lat <= 90


def is_valid_longitude(lng: Any) -> bool:
    return is_number(lng) and not math.isnan(lng) and -180 <= lng <= 180


def validate_coordinates(lat: Any, lng: Any) -> CoordinateValidation:
    lat_f, lng_f = _to_float(lat), _to_float(lng)
    if not is_valid_latitude(lat_f):
        return CoordinateValidation(
            False, error=f"Invalid latitude: {lat}. Must be between -90 and 90."
        )
    if not is_valid_longitude(lng_f):
        return CoordinateValidation(
            False, error=f"Invalid longitude: {lng}. Must be between -180 and 180."
        )
    return CoordinateValidation(True, lat=lat_f, lng=lng_f)


def _valid(points: Sequence[MapPoint]) -> List[LatLng]:
    checked = (validate_coordinates(p.lat, p.lng) for p in points)
    return [(c.lat, c.lng) for c in checked if c.is_valid]


def center(points: Sequence[MapPoint]) -> Optional[LatLng]:
    coords = _valid(points)
    if not coords:
        return None
    return (
        sum(lat for lat, _ in coords) / len(coords),
        sum(lng for _, lng in coords) / len(coords),
    )


def bounds(points: Sequence[MapPoint]) -> Optional[Bounds]:
    coords = _valid(points)
    if not coords:
        return None
    lats = [lat for lat, _ in coords]
    lngs = [lng for _, lng in coords]
    return (min(lats), min(lngs)), (max(lats), max(lngs))


def bbox_to_bounds(bbox: Sequence[float]) -> Bounds:
    """GeoJSON ``[minLng, minLat, maxLng, maxLat]`` to south-west/north-east corners"""
    min_lng, min_lat, max_lng, max_lat = bbox
    return (min_lat, min_lng), (max_lat, max_lng)


def color_for_value(value: float, scale: ColorScale) -> str:
    colors = scale.colors
    if scale.type == ScaleType.CATEGORICAL:
        return colors[math.floor(value) % len(colors)]

    if not scale.domain or len(scale.domain) != 2:
        return colors[0]

    low, high = scale.domain
    normalized = (value - low) / (high - low) if high != low else 0
    clamped = max(0.0, min(1.0, normalized))

    if scale.type == ScaleType.SEQUENTIAL:
        return colors[math.floor(clamped * (len(colors) - 1))]

    middle = len(colors) // 2
    if clamped < 0.5:
        return colors[math.floor(clamped * 2 * middle)]
    upper = (clamped - 0.5) * 2 * (len(colors) - middle - 1) + middle
    return colors[math.floor(upper)]


def color_steps(scale: ColorScale, count: int = 5) -> List[Tuple[float, str]]:
    """Evenly spaced legend entries across the scale's domain"""
    if not scale.domain or len(scale.domain) != 2 or count < 2:
        return []
    low, high = scale.domain
    step = (high - low) / (count - 1)
    values = [low + step * i for i in range(count)]
    return [(v, color_for_value(v, scale)) for v in values]


def validate_geojson(data: Any) -> bool:
    """A FeatureCollection whose first feature carries a geometry"""
    if not isinstance(data, dict) or data.get("type") != "FeatureCollection":
        return False
    features = data.get("features")
    if not isinstance(features, list) or not features:
        return False
    first = features[0]
    return (
        isinstance(first, dict)
        and first.get("type") == "Feature"
        and bool(first.get("geometry"))
    )


def format_map_number(value: Optional[float]) -> str:
    if value is None:
        return "N/A"
    if abs(value) >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if abs(value) >= 1_000:
        return f"{value / 1_000:.1f}K"
    return f"{value:.0f}"


def choropleth_values(
    geojson: Dict[str, Any],
    rows: Sequence[Dict[str, Any]],
    join_property: str,
    data_column: str,
) -> Dict[str, float]:
    """Values from query rows keyed by the feature property they join on"""
    keys = {
        str(f.get("properties", {}).get(join_property))
        for f in geojson.get("features", [])
    }
    return {
        str(row[join_property]): row[data_column]
        for row in rows
        if str(row.get(join_property)) in keys and is_number(row.get(data_column))
    }
