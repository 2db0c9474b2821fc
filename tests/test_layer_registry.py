# tests/test_layer_registry.py

import copy
import os
import sys

import pytest

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from exceptions import DuplicateLayerError, LayerNotFoundError, ValidationError
from layer_registry import (
    Layer, LayerRegistry, create_layer, validate_layer, merge_layers,
    get_feature_names, filter_features, resolve_feature_id, resolve_feature_name,
    layer_to_geodataframe, layer_bounds
)


def make_feature(feature_id, ring, **properties):
    return {
        'id': feature_id,
        'type': 'Feature',
        'geometry': {'type': 'Polygon', 'coordinates': [ring]},
        'properties': properties
    }


@pytest.fixture
def ahupuaa_layer():
    return create_layer(
        'boundary_ahupuaa_layer',
        'Ahupuaa Boundaries',
        {
            'type': 'FeatureCollection',
            'features': [
                make_feature('1', [[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]], ahupuaa='Test Ahupuaa 1', objectid='1'),
                make_feature('2', [[1, 1], [2, 1], [2, 2], [1, 2], [1, 1]], ahupuaa='Test Ahupuaa 2', objectid='2'),
            ]
        },
        'ahupuaa'
    )


@pytest.fixture
def school_layer():
    return create_layer(
        'complex_area_school_layer',
        'School Complex Areas',
        {
            'type': 'FeatureCollection',
            'features': [
                make_feature('3', [[2, 2], [3, 2], [3, 3], [2, 3], [2, 2]], complex_area='Test School Complex', objectid='3')
            ]
        },
        'complex_area',
        style={'fill': {'color': '#800080', 'opacity': 0.2}, 'line': {'color': '#800080', 'width': 2}}
    )


@pytest.fixture
def registry(ahupuaa_layer, school_layer):
    return LayerRegistry([ahupuaa_layer, school_layer])


class TestCreateLayer:
    def test_default_style(self, ahupuaa_layer):
        assert ahupuaa_layer.style == {
            'fill': {'color': '#0888', 'opacity': 0.2},
            'line': {'color': '#088', 'width': 2}
        }

    def test_default_style_not_shared(self):
        first = create_layer('a', 'A', {'type': 'FeatureCollection', 'features': []}, 'name')
        second = create_layer('b', 'B', {'type': 'FeatureCollection', 'features': []}, 'name')
        first.style['fill']['color'] = '#fff'
        assert second.style['fill']['color'] == '#0888'

    def test_custom_style_is_copied(self, school_layer):
        assert school_layer.style['fill']['color'] == '#800080'


class TestValidateLayer:
    def test_valid_layer(self, ahupuaa_layer):
        result = validate_layer(ahupuaa_layer)
        assert result.is_valid
        assert result.errors == []

    def test_missing_id_and_name_reports_both(self, ahupuaa_layer):
        layer = copy.copy(ahupuaa_layer)
        layer.id = ''
        layer.name = ''
        result = validate_layer(layer)
        assert result.is_valid is False
        assert result.errors == ['Layer ID is required', 'Layer name is required']

    def test_wrong_collection_type(self, ahupuaa_layer):
        layer = copy.copy(ahupuaa_layer)
        layer.data = {'type': 'Feature', 'features': []}
        result = validate_layer(layer)
        assert result.errors == ['Layer data must be a FeatureCollection']

    def test_features_must_be_sequence(self):
        layer = Layer('x', 'X', {'type': 'FeatureCollection', 'features': 'nope'}, 'name')
        assert validate_layer(layer).errors == ['Layer features must be an array']

    def test_missing_everything(self):
        result = validate_layer(Layer('', '', None, ''))
        assert len(result.errors) == 4


class TestFeatureAccessors:
    def test_get_feature_names(self, ahupuaa_layer):
        names = get_feature_names(ahupuaa_layer)
        assert [item['name'] for item in names] == ['Test Ahupuaa 1', 'Test Ahupuaa 2']
        assert [item['id'] for item in names] == ['1', '2']
        assert names[0]['feature'] is ahupuaa_layer.data['features'][0]

    def test_name_fallback(self):
        feature = {'type': 'Feature', 'geometry': None, 'properties': {}}
        assert resolve_feature_name(feature, 'name') == 'Unnamed Feature'
        assert resolve_feature_name({'type': 'Feature', 'geometry': None}, 'name') == 'Unnamed Feature'

    def test_id_fallback_chain(self):
        assert resolve_feature_id({'id': 9, 'properties': {'objectid': 7, 'id': 8}}) == '7'
        assert resolve_feature_id({'id': 9, 'properties': {'id': 8}}) == '8'
        assert resolve_feature_id({'id': 9, 'properties': {}}) == '9'
        assert resolve_feature_id({'properties': {}}) == ''
        # zero is a real identifier
        assert resolve_feature_id({'properties': {'objectid': 0}}) == '0'

    def test_non_dict_properties_read_as_empty(self):
        feature = {'id': 4, 'type': 'Feature', 'geometry': None, 'properties': ['junk']}
        assert resolve_feature_name(feature, 'name') == 'Unnamed Feature'
        assert resolve_feature_id(feature) == '4'

    def test_filter_features(self, ahupuaa_layer):
        matches = filter_features(ahupuaa_layer, 'ahupuaa 2')
        assert matches == [ahupuaa_layer.data['features'][1]]
        assert filter_features(ahupuaa_layer, 'missing') == []

    def test_filter_numeric_term(self, ahupuaa_layer):
        assert filter_features(ahupuaa_layer, 2) == [ahupuaa_layer.data['features'][1]]

    def test_filter_blank_term_passes_through(self, ahupuaa_layer):
        assert filter_features(ahupuaa_layer, '') is ahupuaa_layer.data['features']
        assert filter_features(ahupuaa_layer, '   ') is ahupuaa_layer.data['features']


class TestMergeLayers:
    def test_merge(self, ahupuaa_layer, school_layer):
        merged = merge_layers([ahupuaa_layer, school_layer], 'merged', 'All Areas')
        assert merged.id == 'merged'
        assert merged.name_property == 'name'
        assert merged.data['type'] == 'FeatureCollection'
        assert [f['id'] for f in merged.features] == ['1', '2', '3']
        assert merged.style['fill'] == {'color': '#666', 'opacity': 0.3}
        assert merged.style['line'] == {'color': '#666', 'width': 1}

    def test_merge_leaves_sources_alone(self, ahupuaa_layer, school_layer):
        merge_layers([ahupuaa_layer, school_layer], 'merged', 'All Areas')
        assert len(ahupuaa_layer.data['features']) == 2
        assert len(school_layer.data['features']) == 1


class TestGeoDataFrame:
    def test_layer_to_geodataframe(self, ahupuaa_layer):
        frame = layer_to_geodataframe(ahupuaa_layer)
        assert len(frame) == 2
        assert list(frame['ahupuaa']) == ['Test Ahupuaa 1', 'Test Ahupuaa 2']

    def test_empty_layer(self):
        layer = create_layer('empty', 'Empty', {'type': 'FeatureCollection', 'features': []}, 'name')
        assert len(layer_to_geodataframe(layer)) == 0
        assert layer_bounds(layer) is None

    def test_layer_bounds(self, ahupuaa_layer):
        assert layer_bounds(ahupuaa_layer) == [0.0, 0.0, 2.0, 2.0]


class TestLayerRegistry:
    def test_insertion_order(self, registry):
        assert [layer.id for layer in registry] == ['boundary_ahupuaa_layer', 'complex_area_school_layer']
        assert len(registry) == 2
        assert 'complex_area_school_layer' in registry

    def test_first_layer_is_active(self, registry):
        assert registry.active_layer.id == 'boundary_ahupuaa_layer'
        assert len(registry.active_layer_features()) == 2

    def test_duplicate_is_ignored(self, registry, ahupuaa_layer):
        assert registry.add_layer(ahupuaa_layer) is False
        assert len(registry) == 2

    def test_duplicate_strict_raises(self, registry, ahupuaa_layer):
        with pytest.raises(DuplicateLayerError):
            registry.add_layer(ahupuaa_layer, strict=True)

    def test_invalid_layer_rejected(self, registry):
        assert registry.add_layer(Layer('', '', None, '')) is False
        assert len(registry) == 2

    def test_remove_layer(self, registry):
        assert registry.remove_layer('boundary_ahupuaa_layer') is True
        assert registry.active_layer.id == 'complex_area_school_layer'
        assert registry.remove_layer('boundary_ahupuaa_layer') is False

    def test_remove_last_layer_clears_active(self, registry):
        registry.remove_layer('boundary_ahupuaa_layer')
        registry.remove_layer('complex_area_school_layer')
        assert registry.active_layer is None

    def test_set_active_layer(self, registry):
        registry.set_active_layer('complex_area_school_layer')
        assert registry.active_layer.id == 'complex_area_school_layer'
        registry.set_active_layer('unknown')
        assert registry.active_layer.id == 'complex_area_school_layer'

    def test_update_layer(self, registry):
        layer = registry.update_layer('boundary_ahupuaa_layer', name='Renamed')
        assert layer.name == 'Renamed'
        assert registry.get_layer('boundary_ahupuaa_layer').name == 'Renamed'

    def test_update_layer_cannot_change_id(self, registry):
        with pytest.raises(ValidationError):
            registry.update_layer('boundary_ahupuaa_layer', id='other')

    def test_update_unknown_attribute(self, registry):
        with pytest.raises(ValidationError):
            registry.update_layer('boundary_ahupuaa_layer', colour='red')

    def test_update_rejects_non_dict_style(self, registry):
        with pytest.raises(ValidationError):
            registry.update_layer('boundary_ahupuaa_layer', style='red')

    def test_update_missing_layer(self, registry):
        with pytest.raises(LayerNotFoundError):
            registry.update_layer('missing', name='x')

    def test_replace_features(self, registry):
        registry.replace_features('complex_area_school_layer', {'type': 'FeatureCollection', 'features': []})
        assert registry.get_layer_features('complex_area_school_layer') == []
        assert registry.get_layer_features('missing') == []

    def test_load_layer_from_geojson(self):
        registry = LayerRegistry()
        added = registry.load_layer_from_geojson(
            'wells', 'Wells',
            {'type': 'FeatureCollection', 'features': [
                {'type': 'Feature', 'geometry': {'type': 'Point', 'coordinates': [0, 0]}, 'properties': {'name': 'Well 1'}}
            ]}
        )
        assert added is True
        layer = registry.get_layer('wells')
        assert layer.name_property == 'name'
        assert get_feature_names(layer)[0]['name'] == 'Well 1'

    def test_clear(self, registry):
        registry.clear()
        assert len(registry) == 0
        assert registry.active_layer is None
