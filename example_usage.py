"""
Example usage of the layer search core
"""
import logging

from config import get_config
from exceptions import InvalidInputError
from color_palette import ColorRegistry
from geometry import area_weighted_centroid, compactness, area
from layer_registry import LayerRegistry, create_layer, validate_layer, Layer
from search_engine import SearchEngine, SearchOptions
from utils import format_area

config = get_config()

logging.basicConfig(level=logging.DEBUG if config.DEBUG else logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')


def field(name, objectid, x0, y0, size):
    ring = [[x0, y0], [x0 + size, y0], [x0 + size, y0 + size], [x0, y0 + size], [x0, y0]]
    return {
        'type': 'Feature',
        'geometry': {'type': 'Polygon', 'coordinates': [ring]},
        'properties': {'field_name': name, 'objectid': objectid}
    }


def build_registry():
    """Registry with one layer of farm fields."""
    registry = LayerRegistry()
    registry.add_layer(create_layer(
        'farm_fields',
        'Farm Fields',
        {'type': 'FeatureCollection', 'features': [
            field('North Pasture', 101, -157.85, 21.30, 0.002),
            field('South Pasture', 102, -157.85, 21.29, 0.003),
            field('Taro Lo\'i', 103, -157.84, 21.30, 0.001),
        ]},
        'field_name'
    ))
    return registry


def example_validation():
    """Example of layer validation."""
    print("=== Validation Example ===")

    result = validate_layer(Layer('', '', {'type': 'FeatureCollection', 'features': []}, 'name'))
    print(f"Valid: {result.is_valid}")
    for error in result.errors:
        print(f"  - {error}")


def example_search(registry):
    """Example of ranked search and suggestions."""
    print("\n=== Search Example ===")

    engine = SearchEngine(registry, ColorRegistry(), config)

    for result in engine.search('pasture', 'all', SearchOptions.from_config(config)):
        label = f"{result.area_acres} acres" if result.area_acres is not None else ''
        print(f"[{result.kind}] {result.name} ({result.match_type}, {result.relevance}) "
              f"{result.color.name} {label}")

    print(f"Suggestions for 'pa': {engine.get_suggestions('pa')}")


def example_geometry(registry):
    """Example of geometry analytics."""
    print("\n=== Geometry Example ===")

    features = registry.get_layer_features('farm_fields')
    for feature in features:
        print(f"{feature['properties']['field_name']}: {format_area(area(feature))}, "
              f"compactness {compactness(feature):.3f}")

    center = area_weighted_centroid(features)
    print(f"Area-weighted centroid: {center['geometry']['coordinates']}")

    try:
        area_weighted_centroid([])
    except InvalidInputError as e:
        print(f"Expected error: {e.message}")


def main():
    """Run all examples."""
    registry = build_registry()
    example_validation()
    example_search(registry)
    example_geometry(registry)


if __name__ == '__main__':
    main()
