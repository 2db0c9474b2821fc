"""
Layer registry for GIS map layers

A Layer wraps a GeoJSON FeatureCollection with display metadata. The
LayerRegistry keeps layers in insertion order, keyed by id, and tracks which
layer is active for feature search.
"""
import copy
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Iterator, List, Optional, Sequence

import geopandas as gpd
from shapely.geometry import shape

from config import Config
from exceptions import DuplicateLayerError, LayerNotFoundError, ValidationError, validate_field_type
from utils import coerce_text, is_blank, is_sequence, normalize_text

logger = logging.getLogger(__name__)

Feature = Dict[str, Any]


@dataclass
class Layer:
    """A named map layer."""

    id: str
    name: str
    data: Dict[str, Any]
    name_property: str
    style: Dict[str, Dict[str, Any]] = field(default_factory=Config.default_style)

    @property
    def features(self) -> List[Feature]:
        """Features of the layer, or an empty list when data is malformed."""
        if not isinstance(self.data, dict):
            return []
        features = self.data.get('features')
        return list(features) if is_sequence(features) else []


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


# ====================
# LAYER HELPERS
# ====================

def create_layer(layer_id: str, name: str, feature_collection: Dict[str, Any],
                 name_property: str, style: Optional[Dict[str, Dict[str, Any]]] = None) -> Layer:
    """
    Create a map layer with standard styling.

    Args:
        layer_id: Layer identifier
        name: Layer display name
        feature_collection: GeoJSON FeatureCollection
        name_property: Property to use for feature names
        style: Optional style; the default teal style is used when omitted

    Returns:
        Configured layer
    """
    return Layer(
        id=layer_id,
        name=name,
        data=feature_collection,
        name_property=name_property,
        style=copy.deepcopy(style) if style is not None else Config.default_style()
    )


def validate_layer(layer: Layer) -> ValidationResult:
    """
    Validate layer data structure.

    Every violation is reported; validation never raises.
    """
    errors = []

    if not layer.id:
        errors.append('Layer ID is required')
    if not layer.name:
        errors.append('Layer name is required')
    if not layer.data:
        errors.append('Layer data is required')
    if not layer.name_property:
        errors.append('Name property is required')

    if layer.data:
        if not isinstance(layer.data, dict) or layer.data.get('type') != 'FeatureCollection':
            errors.append('Layer data must be a FeatureCollection')
        elif not is_sequence(layer.data.get('features')):
            errors.append('Layer features must be an array')

    return ValidationResult(is_valid=not errors, errors=errors)


def feature_properties(feature: Feature) -> Dict[str, Any]:
    """Feature's property bag; anything but a dict reads as empty."""
    properties = feature.get('properties')
    return properties if isinstance(properties, dict) else {}


def resolve_feature_name(feature: Feature, name_property: str) -> str:
    """Feature's display name, or 'Unnamed Feature' when it has none."""
    properties = feature_properties(feature)
    value = properties.get(name_property)
    if is_blank(value):
        return Config.UNNAMED_FEATURE
    return coerce_text(value)


def resolve_feature_id(feature: Feature) -> str:
    """
    Feature identifier from the first populated source.

    Datasets differ in where they put identifiers, so properties.objectid,
    then properties.id, then the feature's own id are tried in turn.
    """
    properties = feature_properties(feature)
    candidates = [properties.get(key) for key in Config.FEATURE_ID_PROPERTIES]
    candidates.append(feature.get('id'))

    for candidate in candidates:
        if candidate is not None and candidate != '':
            return coerce_text(candidate)
    return ''


def get_feature_names(layer: Layer) -> List[Dict[str, Any]]:
    """
    Get feature names from a layer.

    Returns:
        List of {'name', 'id', 'feature'} dicts in feature order
    """
    return [
        {
            'name': resolve_feature_name(feature, layer.name_property),
            'id': resolve_feature_id(feature),
            'feature': feature
        }
        for feature in layer.features
    ]


def filter_features(layer: Layer, term: str) -> List[Feature]:
    """
    Filter features in a layer by search term.

    Case-insensitive substring match on the resolved feature name. A blank
    term returns the layer's feature list as is.
    """
    if is_blank(term):
        if isinstance(layer.data, dict) and is_sequence(layer.data.get('features')):
            return layer.data['features']
        return []

    needle = normalize_text(term)
    return [
        feature for feature in layer.features
        if needle in resolve_feature_name(feature, layer.name_property).lower()
    ]


def merge_layers(layers: Sequence[Layer], merged_id: str, merged_name: str) -> Layer:
    """
    Merge multiple layers into one.

    Features are concatenated layer by layer; the source layers are left
    untouched.
    """
    all_features = []
    for layer in layers:
        all_features.extend(layer.features)

    return Layer(
        id=merged_id,
        name=merged_name,
        data={'type': 'FeatureCollection', 'features': all_features},
        name_property=Config.DEFAULT_NAME_PROPERTY,
        style=Config.merged_style()
    )


def layer_to_geodataframe(layer: Layer) -> gpd.GeoDataFrame:
    """Layer features as a WGS84 GeoDataFrame (properties become columns)."""
    features = [feature for feature in layer.features if feature.get('geometry')]
    if not features:
        return gpd.GeoDataFrame(geometry=[], crs='EPSG:4326')
    return gpd.GeoDataFrame.from_features(features, crs='EPSG:4326')


def layer_bounds(layer: Layer) -> Optional[List[float]]:
    """Bounding box [min_lng, min_lat, max_lng, max_lat] of all features, or None."""
    geometries = [shape(feature['geometry']) for feature in layer.features if feature.get('geometry')]
    if not geometries:
        return None
    return [float(value) for value in gpd.GeoSeries(geometries, crs='EPSG:4326').total_bounds]


# ====================
# REGISTRY
# ====================

class LayerRegistry:
    """Ordered collection of layers keyed by id."""

    def __init__(self, layers: Optional[Sequence[Layer]] = None):
        self._layers: Dict[str, Layer] = {}
        self._active_id: Optional[str] = None

        for layer in layers or []:
            self.add_layer(layer)

    @property
    def layers(self) -> List[Layer]:
        return list(self._layers.values())

    @property
    def active_layer(self) -> Optional[Layer]:
        if self._active_id is None:
            return None
        return self._layers.get(self._active_id)

    def add_layer(self, layer: Layer, strict: bool = False) -> bool:
        """
        Add a layer to the registry.

        Args:
            layer: Layer to add
            strict: Raise DuplicateLayerError instead of ignoring a duplicate id

        Returns:
            True if the layer was added, False if it was invalid or its id
            already existed
        """
        validation = validate_layer(layer)
        if not validation.is_valid:
            logger.error(f"Invalid layer: {validation.errors}")
            return False

        if layer.id in self._layers:
            if strict:
                raise DuplicateLayerError(layer.id)
            logger.warning(f"Layer with ID {layer.id} already exists")
            return False

        self._layers[layer.id] = layer

        # First layer becomes the active one
        if self._active_id is None:
            self._active_id = layer.id

        logger.info(f"Added layer {layer.id} ({len(layer.features)} features)")
        return True

    def remove_layer(self, layer_id: str) -> bool:
        """Remove a layer; removing an unknown id is a no-op."""
        if self._layers.pop(layer_id, None) is None:
            return False

        if self._active_id == layer_id:
            remaining = next(iter(self._layers), None)
            self._active_id = remaining

        logger.info(f"Removed layer {layer_id}")
        return True

    def update_layer(self, layer_id: str, **changes: Any) -> Layer:
        """
        Update display attributes of a layer.

        Raises:
            ValidationError: If the change would alter the layer id or an
                unknown attribute
            LayerNotFoundError: If the layer does not exist
        """
        layer = self.get_layer(layer_id)
        if layer is None:
            raise LayerNotFoundError(layer_id)

        if 'id' in changes and changes['id'] != layer_id:
            raise ValidationError("Layer ID cannot be changed", field='id')

        allowed = {'name', 'name_property', 'style', 'data'}
        unknown = set(changes) - allowed - {'id'}
        if unknown:
            raise ValidationError(
                f"Unknown layer attributes: {', '.join(sorted(unknown))}",
                details={'allowed': sorted(allowed)}
            )

        validate_field_type(changes, 'style', dict, required=False)
        validate_field_type(changes, 'data', dict, required=False)

        for attribute in allowed & set(changes):
            setattr(layer, attribute, changes[attribute])

        logger.info(f"Updated layer {layer_id}: {sorted(set(changes) - {'id'})}")
        return layer

    def replace_features(self, layer_id: str, feature_collection: Dict[str, Any]) -> Layer:
        """Replace a layer's FeatureCollection wholesale."""
        return self.update_layer(layer_id, data=feature_collection)

    def get_layer(self, layer_id: str) -> Optional[Layer]:
        return self._layers.get(layer_id)

    def get_layer_features(self, layer_id: str) -> List[Feature]:
        layer = self.get_layer(layer_id)
        return layer.features if layer is not None else []

    def active_layer_features(self) -> List[Feature]:
        layer = self.active_layer
        return layer.features if layer is not None else []

    def set_active_layer(self, layer_id: Optional[str]) -> Optional[Layer]:
        """Make a layer active; unknown ids leave the active layer unchanged."""
        if layer_id is None:
            self._active_id = None
        elif layer_id in self._layers:
            self._active_id = layer_id
        else:
            logger.warning(f"Cannot activate unknown layer {layer_id}")
        return self.active_layer

    def load_layer_from_geojson(self, layer_id: str, name: str, data: Dict[str, Any],
                                name_property: str = Config.DEFAULT_NAME_PROPERTY) -> bool:
        """Create a default-styled layer from GeoJSON and add it."""
        return self.add_layer(create_layer(layer_id, name, data, name_property))

    def clear(self) -> None:
        self._layers.clear()
        self._active_id = None

    def __len__(self) -> int:
        return len(self._layers)

    def __iter__(self) -> Iterator[Layer]:
        return iter(list(self._layers.values()))

    def __contains__(self, layer_id: str) -> bool:
        return layer_id in self._layers
