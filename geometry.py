"""
Geometry analytics for GeoJSON features

Area, length, centroid, bounding box, shape indices and spatial predicates
over GeoJSON-like feature dicts. Coordinates are longitude/latitude (WGS84);
areas and lengths are geodesic on the WGS84 ellipsoid. Nothing here mutates
its arguments.
"""
import copy
import math
import logging
from typing import Dict, Any, List, Optional, Sequence, Tuple, Union

import numpy as np
import geopandas as gpd
import shapely
from pyproj import Geod
from shapely.errors import GEOSException
from shapely.geometry import GeometryCollection, Point, box, mapping, shape
from shapely.geometry.polygon import orient

from config import Config
from exceptions import InvalidInputError, handle_geometry_error, validate_numeric_range

logger = logging.getLogger(__name__)

Feature = Dict[str, Any]
BBox = List[float]

GEOD = Geod(ellps=Config.ELLIPSOID)

WGS84 = 'EPSG:4326'


# ====================
# CONVERSION HELPERS
# ====================

def _geometry_of(feature: Feature) -> Dict[str, Any]:
    """Accept a Feature or a bare geometry dict and return the geometry."""
    if feature.get('type') == 'Feature':
        geometry = feature.get('geometry')
        if geometry is None:
            raise InvalidInputError("Feature has no geometry")
        return geometry
    return feature


def _to_shape(feature: Feature):
    return shape(_geometry_of(feature))


def _make_feature(geom, properties: Optional[Dict[str, Any]] = None) -> Feature:
    return {
        'type': 'Feature',
        'geometry': mapping(geom),
        'properties': dict(properties or {})
    }


def _make_point(lng: float, lat: float, properties: Optional[Dict[str, Any]] = None) -> Feature:
    return {
        'type': 'Feature',
        'geometry': {'type': 'Point', 'coordinates': [float(lng), float(lat)]},
        'properties': dict(properties or {})
    }


def _point_coords(point: Union[Feature, Sequence[float]]) -> Tuple[float, float]:
    """Get (lng, lat) from a Point feature, Point geometry or coordinate pair."""
    if isinstance(point, dict):
        geometry = _geometry_of(point)
        if geometry.get('type') != 'Point':
            raise InvalidInputError(
                "Expected a Point geometry",
                details={'geometry_type': geometry.get('type')}
            )
        coords = geometry['coordinates']
    else:
        coords = point
    return float(coords[0]), float(coords[1])


def _length_factor(unit: str) -> float:
    if not Config.is_valid_length_unit(unit):
        raise InvalidInputError(
            f"Unsupported length unit '{unit}'",
            details={'valid_units': list(Config.LENGTH_CONVERSIONS)}
        )
    return Config.LENGTH_CONVERSIONS[unit]


def _area_factor(unit: str) -> float:
    if not Config.is_valid_area_unit(unit):
        raise InvalidInputError(
            f"Unsupported area unit '{unit}'",
            details={'valid_units': list(Config.AREA_CONVERSIONS)}
        )
    return Config.AREA_CONVERSIONS[unit]


def _polygonal_parts(geom) -> List[Any]:
    if geom.is_empty:
        return []
    if geom.geom_type == 'Polygon':
        return [geom]
    if geom.geom_type in ('MultiPolygon', 'GeometryCollection'):
        return [poly for part in geom.geoms for poly in _polygonal_parts(part)]
    return []


def _geodesic_area(geom) -> float:
    """Geodesic area in square meters; zero for points and lines."""
    total = 0.0
    for polygon in _polygonal_parts(geom):
        polygon_area, _ = GEOD.geometry_area_perimeter(orient(polygon, sign=1.0))
        total += abs(polygon_area)
    return total


def _geodesic_length(geom) -> float:
    """Geodesic length in meters; rings of polygons are included."""
    if geom.is_empty or geom.geom_type in ('Point', 'MultiPoint'):
        return 0.0
    if geom.geom_type == 'GeometryCollection':
        return sum(_geodesic_length(part) for part in geom.geoms)
    return float(GEOD.geometry_length(geom))


def _vertices(geom) -> List[Tuple[float, ...]]:
    """Vertices of a geometry, skipping the closing position of each ring."""
    if geom.is_empty:
        return []
    if geom.geom_type == 'Polygon':
        rings = [geom.exterior, *geom.interiors]
        return [coord for ring in rings for coord in list(ring.coords)[:-1]]
    if hasattr(geom, 'geoms'):
        return [coord for part in geom.geoms for coord in _vertices(part)]
    return list(geom.coords)


# ====================
# AREA
# ====================

@handle_geometry_error
def area(feature: Feature) -> float:
    """
    Calculate the geodesic area of a feature.

    Args:
        feature: Polygon or MultiPolygon feature

    Returns:
        Area in square meters (0 for points and lines)
    """
    return _geodesic_area(_to_shape(feature))


def area_in_acres(feature: Feature) -> float:
    """Area in acres, rounded to 2 decimal places."""
    return round(area(feature) * Config.AREA_CONVERSIONS['acres'], 2)


def area_in_hectares(feature: Feature) -> float:
    return area(feature) * Config.AREA_CONVERSIONS['hectares']


def area_in_square_feet(feature: Feature) -> float:
    return area(feature) * Config.AREA_CONVERSIONS['square_feet']


def area_in_square_kilometers(feature: Feature) -> float:
    return area(feature) * Config.AREA_CONVERSIONS['square_kilometers']


def area_in_multiple_units(feature: Feature) -> Dict[str, float]:
    """Area of a feature in every supported unit (unrounded)."""
    square_meters = area(feature)
    return {unit: square_meters * factor for unit, factor in Config.AREA_CONVERSIONS.items()}


def convert_area(value: float, from_unit: str, to_unit: str) -> float:
    """
    Convert an area between units.

    Args:
        value: Area expressed in from_unit
        from_unit: Source unit key
        to_unit: Target unit key

    Returns:
        Area expressed in to_unit
    """
    return value / _area_factor(from_unit) * _area_factor(to_unit)


def total_area(features: Sequence[Feature], unit: str = 'square_meters') -> float:
    """Sum of feature areas in the given unit; 0 for an empty sequence."""
    factor = _area_factor(unit)
    return sum(area(feature) for feature in features) * factor


# ====================
# MEASUREMENT SUMMARIES
# ====================

def average_area(features: Sequence[Feature], unit: str = 'acres') -> float:
    if not features:
        return 0.0
    return total_area(features, unit) / len(features)


def largest_feature(features: Sequence[Feature]) -> Optional[Feature]:
    """Feature with the largest area, first one wins ties."""
    if not features:
        return None
    return max(features, key=area)


def smallest_feature(features: Sequence[Feature]) -> Optional[Feature]:
    """Feature with the smallest area, first one wins ties."""
    if not features:
        return None
    return min(features, key=area)


def feature_density(features: Sequence[Feature], boundary_area: float) -> float:
    """Features per square meter of boundary area."""
    if boundary_area <= 0:
        return 0.0
    return len(features) / boundary_area


def total_perimeter(features: Sequence[Feature], unit: str = 'meters') -> float:
    return sum(perimeter(feature, unit) for feature in features)


# ====================
# LENGTH
# ====================

@handle_geometry_error
def perimeter(feature: Feature, unit: str = 'meters') -> float:
    """
    Calculate the geodesic perimeter (or length) of a feature.

    Args:
        feature: Polygon or line feature
        unit: meters, kilometers, miles or feet

    Returns:
        Length in the requested unit (0 for points)
    """
    factor = _length_factor(unit)
    return _geodesic_length(_to_shape(feature)) * factor


def line_length(feature: Feature, unit: str = 'meters') -> float:
    """Length of a line feature; same computation as perimeter."""
    return perimeter(feature, unit)


# ====================
# CENTROIDS & BOUNDS
# ====================

@handle_geometry_error
def centroid(feature: Feature) -> Feature:
    """
    Geometric centroid: the mean of the feature's distinct vertices.

    The closing position of each polygon ring is not counted, so a square's
    centroid falls exactly on its center. This is not area-weighted; see
    center_of_mass for that.
    """
    vertices = _vertices(_to_shape(feature))
    if not vertices:
        raise InvalidInputError("Cannot compute centroid of an empty geometry")

    coords = np.asarray([vertex[:2] for vertex in vertices], dtype=float)
    lng, lat = coords.mean(axis=0)
    return _make_point(lng, lat, feature.get('properties'))


@handle_geometry_error
def area_weighted_centroid(features: Sequence[Feature]) -> Feature:
    """
    Area-weighted centroid of several features.

    Args:
        features: Polygon features

    Returns:
        Point feature at sum(centroid_i * area_i) / sum(area_i)

    Raises:
        InvalidInputError: If features is empty or their total area is zero
    """
    if not features:
        raise InvalidInputError("No features provided for area-weighted centroid")

    if len(features) == 1:
        return centroid(features[0])

    centers = np.asarray(
        [centroid(feature)['geometry']['coordinates'] for feature in features],
        dtype=float
    )
    weights = np.asarray([area(feature) for feature in features], dtype=float)

    total_weight = weights.sum()
    if total_weight == 0:
        raise InvalidInputError(
            "Total area is zero; cannot weight centroids",
            details={'feature_count': len(features)}
        )

    lng, lat = (centers * weights[:, np.newaxis]).sum(axis=0) / total_weight
    return _make_point(lng, lat)


@handle_geometry_error
def center_of_mass(feature: Feature) -> Feature:
    """Area-weighted center of a single feature."""
    geom = _to_shape(feature)
    if geom.is_empty:
        raise InvalidInputError("Cannot compute center of mass of an empty geometry")
    center = geom.centroid
    return _make_point(center.x, center.y, feature.get('properties'))


@handle_geometry_error
def bounding_box(feature: Feature) -> BBox:
    """Bounding box as [min_lng, min_lat, max_lng, max_lat]."""
    geom = _to_shape(feature)
    if geom.is_empty:
        raise InvalidInputError("Cannot compute bounding box of an empty geometry")
    return [float(value) for value in geom.bounds]


def bounding_box_polygon(bbox: Sequence[float]) -> Feature:
    """Closed 5-position polygon covering a bounding box."""
    min_lng, min_lat, max_lng, max_lat = [float(value) for value in bbox]
    ring = [
        [min_lng, min_lat],
        [max_lng, min_lat],
        [max_lng, max_lat],
        [min_lng, max_lat],
        [min_lng, min_lat]
    ]
    return {
        'type': 'Feature',
        'geometry': {'type': 'Polygon', 'coordinates': [ring]},
        'properties': {}
    }


@handle_geometry_error
def is_feature_in_bbox(feature: Feature, bbox: Sequence[float]) -> bool:
    """True when the feature lies entirely within the bounding box."""
    return box(*bbox).covers(_to_shape(feature))


def envelope(feature: Feature) -> Feature:
    """Axis-aligned bounding rectangle of a feature."""
    return bounding_box_polygon(bounding_box(feature))


def minimum_bounding_rectangle(feature: Feature) -> Feature:
    # Approximated by the envelope; no rotated rectangle is computed.
    return envelope(feature)


@handle_geometry_error
def minimum_bounding_circle(feature: Feature) -> Feature:
    """
    Smallest circle enclosing a feature, as a polygon feature.

    The circle is fitted in the feature's local UTM zone so it is round on
    the ground, then projected back to WGS84. radius_meters and center
    ([lng, lat]) are added to the feature's properties.
    """
    geom = _to_shape(feature)
    if geom.is_empty:
        raise InvalidInputError("Cannot fit a circle around an empty geometry")

    series = gpd.GeoSeries([geom], crs=WGS84)
    utm_crs = series.estimate_utm_crs()
    projected = series.to_crs(utm_crs).iloc[0]

    circle = shapely.minimum_bounding_circle(projected)
    radius = float(shapely.minimum_bounding_radius(projected))

    circle_wgs84, center = gpd.GeoSeries([circle, circle.centroid], crs=utm_crs).to_crs(WGS84)

    properties = dict(feature.get('properties') or {})
    properties['radius_meters'] = radius
    properties['center'] = [center.x, center.y]
    return _make_feature(circle_wgs84, properties)


# ====================
# SPATIAL PREDICATES
# ====================

@handle_geometry_error
def is_point_in_polygon(point: Feature, polygon: Feature) -> bool:
    """
    Check if a point is inside a polygon.

    Points on the polygon boundary count as inside.
    """
    return _to_shape(polygon).covers(Point(_point_coords(point)))


@handle_geometry_error
def intersects(a: Feature, b: Feature) -> bool:
    return _to_shape(a).intersects(_to_shape(b))


@handle_geometry_error
def intersection_area(a: Feature, b: Feature) -> float:
    """
    Area of overlap between two features.

    Returns:
        Square meters; 0 when the features do not overlap or GEOS cannot
        compute their intersection
    """
    geom_a, geom_b = _to_shape(a), _to_shape(b)
    try:
        overlap = geom_a.intersection(geom_b)
    except GEOSException as e:
        logger.warning(f"Intersection failed, treating as no overlap: {e}")
        return 0.0

    if overlap.is_empty:
        return 0.0
    return _geodesic_area(overlap)


@handle_geometry_error
def union(a: Feature, b: Feature) -> Optional[Feature]:
    merged = _to_shape(a).union(_to_shape(b))
    if merged.is_empty:
        return None
    return _make_feature(merged, a.get('properties'))


@handle_geometry_error
def difference(a: Feature, b: Feature) -> Optional[Feature]:
    """Part of a not covered by b, or None when nothing remains."""
    remainder = _to_shape(a).difference(_to_shape(b))
    if remainder.is_empty:
        return None
    return _make_feature(remainder, a.get('properties'))


# ====================
# POINTS, DISTANCE & BEARING
# ====================

@handle_geometry_error
def distance(p1: Feature, p2: Feature, unit: str = 'meters') -> float:
    """
    Geodesic distance between two points.

    Args:
        p1: First point (feature or [lng, lat])
        p2: Second point (feature or [lng, lat])
        unit: meters, kilometers, miles or feet

    Returns:
        Distance in the requested unit
    """
    factor = _length_factor(unit)
    lng1, lat1 = _point_coords(p1)
    lng2, lat2 = _point_coords(p2)
    _, _, meters = GEOD.inv(lng1, lat1, lng2, lat2)
    return float(meters) * factor


@handle_geometry_error
def bearing(p1: Feature, p2: Feature) -> float:
    """Initial bearing from p1 to p2 in degrees, in the range -180..180."""
    lng1, lat1 = _point_coords(p1)
    lng2, lat2 = _point_coords(p2)
    forward_azimuth, _, _ = GEOD.inv(lng1, lat1, lng2, lat2)
    return float(forward_azimuth)


@handle_geometry_error
def destination_point(start: Feature, distance_meters: float, bearing_degrees: float) -> Feature:
    """Point reached by travelling distance_meters from start along bearing_degrees."""
    lng, lat = _point_coords(start)
    dest_lng, dest_lat, _ = GEOD.fwd(lng, lat, bearing_degrees, distance_meters)
    return _make_point(dest_lng, dest_lat)


@handle_geometry_error
def midpoint(p1: Feature, p2: Feature) -> Feature:
    """Point halfway between p1 and p2 along the geodesic."""
    lng1, lat1 = _point_coords(p1)
    lng2, lat2 = _point_coords(p2)
    forward_azimuth, _, meters = GEOD.inv(lng1, lat1, lng2, lat2)
    mid_lng, mid_lat, _ = GEOD.fwd(lng1, lat1, forward_azimuth, meters / 2)
    return _make_point(mid_lng, mid_lat)


def nearest_point(target: Feature, points: Sequence[Feature]) -> Feature:
    """
    Closest candidate point to target.

    The returned feature is a copy of the winning point with
    feature_index and distance_to_point (meters) added to its properties.
    """
    if not points:
        raise InvalidInputError("No candidate points provided")

    distances = [distance(target, point) for point in points]
    best_index = int(np.argmin(distances))
    best = points[best_index]

    properties = dict(best.get('properties') or {})
    properties['feature_index'] = best_index
    properties['distance_to_point'] = distances[best_index]

    return {
        'type': 'Feature',
        'geometry': copy.deepcopy(_geometry_of(best)),
        'properties': properties
    }


@handle_geometry_error
def nearest_point_on_line(point: Feature, line: Feature) -> Feature:
    """Closest position on a line to a point, with its distance in meters."""
    line_geom = _to_shape(line)
    if line_geom.is_empty:
        raise InvalidInputError("Cannot snap to an empty line")

    origin = Point(_point_coords(point))
    snapped = line_geom.interpolate(line_geom.project(origin))

    return _make_point(snapped.x, snapped.y, {
        'distance': distance([origin.x, origin.y], [snapped.x, snapped.y])
    })


# ====================
# SHAPE INDICES
# ====================

def _area_and_perimeter(feature: Feature) -> Tuple[float, float]:
    return area(feature), perimeter(feature)


def compactness(feature: Feature) -> float:
    """
    Compactness ratio 4*pi*area / perimeter^2.

    1 for a perfect circle, approaching 0 for irregular shapes.
    """
    feature_area, feature_perimeter = _area_and_perimeter(feature)
    if feature_perimeter == 0:
        return 0.0
    return (4 * math.pi * feature_area) / (feature_perimeter ** 2)


def circularity(feature: Feature) -> float:
    return compactness(feature)


def roundness(feature: Feature) -> float:
    return compactness(feature)


def efficiency(feature: Feature) -> float:
    return compactness(feature)


def elongation(feature: Feature) -> float:
    """Inverse compactness, perimeter^2 / (4*pi*area)."""
    feature_area, feature_perimeter = _area_and_perimeter(feature)
    if feature_perimeter == 0 or feature_area == 0:
        return 0.0
    return (feature_perimeter ** 2) / (4 * math.pi * feature_area)


def shape_index(feature: Feature) -> float:
    """Perimeter relative to a circle of equal area (1 = circle)."""
    feature_area, feature_perimeter = _area_and_perimeter(feature)
    if feature_area <= 0 or feature_perimeter <= 0:
        return 0.0
    return feature_perimeter / (2 * math.sqrt(math.pi * feature_area))


def aspect_ratio(feature: Feature) -> float:
    """Bounding box width / height, in degrees."""
    min_lng, min_lat, max_lng, max_lat = bounding_box(feature)
    height = max_lat - min_lat
    if height == 0:
        return 0.0
    return (max_lng - min_lng) / height


def fractal_dimension(feature: Feature) -> float:
    """2 * ln(perimeter) / ln(area); higher is more complex."""
    feature_area, feature_perimeter = _area_and_perimeter(feature)
    if feature_area <= 0 or feature_perimeter <= 0:
        return 0.0

    log_area = math.log(feature_area)
    if log_area == 0:
        # area of exactly 1 m²
        return 0.0
    return 2 * math.log(feature_perimeter) / log_area


# ====================
# DERIVED GEOMETRIES
# ====================

@handle_geometry_error
def convex_hull(features: Union[Feature, Sequence[Feature]]) -> Feature:
    """Convex hull enclosing one feature or a sequence of features."""
    if isinstance(features, dict):
        features = [features]
    if not features:
        raise InvalidInputError("No features provided for convex hull")

    collection = GeometryCollection([_to_shape(feature) for feature in features])
    hull = collection.convex_hull
    if hull.is_empty:
        raise InvalidInputError("Convex hull of empty geometries is undefined")
    return _make_feature(hull)


@handle_geometry_error
def buffer(feature: Feature, distance_meters: float) -> Optional[Feature]:
    """
    Buffer a feature by a distance in meters.

    The geometry is projected to its local UTM zone, buffered there and
    projected back to WGS84. Negative distances shrink polygons; None is
    returned when nothing is left.
    """
    series = gpd.GeoSeries([_to_shape(feature)], crs=WGS84)
    utm_crs = series.estimate_utm_crs()

    buffered = series.to_crs(utm_crs).buffer(distance_meters).to_crs(WGS84)
    geom = buffered.iloc[0]
    if geom is None or geom.is_empty:
        return None
    return _make_feature(geom, feature.get('properties'))


@handle_geometry_error
def simplify(feature: Feature, tolerance: float = Config.SIMPLIFY_TOLERANCE,
             preserve_topology: bool = True) -> Feature:
    """
    Simplify a feature's geometry.

    Args:
        feature: Line or polygon feature
        tolerance: Maximum allowed deviation, in degrees
        preserve_topology: Keep polygons valid (slower)

    Returns:
        New feature with simplified geometry and the same properties
    """
    validate_numeric_range(tolerance, min_val=0, field_name='tolerance')
    simplified = _to_shape(feature).simplify(tolerance, preserve_topology=preserve_topology)
    return _make_feature(simplified, feature.get('properties'))
