"""
Test config, exceptions and utils
"""
import unittest
import sys
import os

# Add parent directory to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import Config, DevelopmentConfig, ProductionConfig, TestingConfig, get_config
from exceptions import (
    FarmMapsError, ValidationError, GeometryError, InvalidInputError,
    DuplicateLayerError, LayerNotFoundError, handle_geometry_error, safe_execute,
    validate_field_type, validate_numeric_range
)
from utils import (
    coerce_text, normalize_text, is_blank, format_number, format_area,
    remove_duplicates, is_sequence
)


class TestConfig(unittest.TestCase):
    """Test configuration management."""

    def test_relevance_bands(self):
        """Bands follow layer > feature name > feature id for each match type."""
        self.assertEqual(Config.get_relevance('layer', 'exact'), 100)
        self.assertEqual(Config.get_relevance('feature_name', 'contains'), 40)
        self.assertEqual(Config.get_relevance('feature_id', 'fuzzy'), 15)

        for match_type in ('exact', 'contains', 'fuzzy'):
            self.assertGreater(Config.get_relevance('layer', match_type),
                               Config.get_relevance('feature_name', match_type))
            self.assertGreater(Config.get_relevance('feature_name', match_type),
                               Config.get_relevance('feature_id', match_type))

    def test_search_modes(self):
        self.assertTrue(Config.is_valid_search_mode('all'))
        self.assertTrue(Config.is_valid_search_mode('layers'))
        self.assertFalse(Config.is_valid_search_mode('everything'))

    def test_units(self):
        self.assertTrue(Config.is_valid_area_unit('acres'))
        self.assertFalse(Config.is_valid_area_unit('furlongs'))
        self.assertTrue(Config.is_valid_length_unit('feet'))
        self.assertEqual(Config.get_area_label('hectares'), 'ha')
        self.assertEqual(Config.get_area_label('unknown'), 'unknown')

    def test_default_style_is_fresh_copy(self):
        style = Config.default_style()
        style['fill']['color'] = '#000'
        self.assertEqual(Config.DEFAULT_LAYER_STYLE['fill']['color'], '#0888')

    def test_validate_config(self):
        self.assertEqual(Config.validate_config(), [])

    def test_config_environments(self):
        """Test different config environments."""
        self.assertIs(get_config('testing'), TestingConfig)
        self.assertEqual(get_config('testing').SEARCH['max_results'], 50)
        self.assertIs(get_config('development'), DevelopmentConfig)
        self.assertIs(get_config('unknown'), DevelopmentConfig)
        self.assertFalse(ProductionConfig.DEBUG)


class TestExceptions(unittest.TestCase):
    """Test custom exceptions."""

    def test_farm_maps_error(self):
        error = FarmMapsError("Test error", {"key": "value"})
        self.assertEqual(error.message, "Test error")
        self.assertEqual(error.details, {"key": "value"})

    def test_geometry_error_with_original(self):
        original = ValueError("bad ring")
        error = GeometryError("Geometry failed", original_error=original)
        self.assertEqual(error.details['error_type'], 'ValueError')
        self.assertIn('original_error', error.details)

    def test_layer_errors(self):
        duplicate = DuplicateLayerError('roads')
        self.assertEqual(duplicate.layer_id, 'roads')
        self.assertIn('roads', duplicate.message)

        missing = LayerNotFoundError('rivers')
        self.assertEqual(missing.details['layer_id'], 'rivers')

    def test_invalid_input_is_geometry_error(self):
        self.assertTrue(issubclass(InvalidInputError, GeometryError))

    def test_handle_geometry_error(self):
        @handle_geometry_error
        def broken(feature):
            return feature['geometry']

        with self.assertRaises(GeometryError):
            broken({})

        @handle_geometry_error
        def raises_ours():
            raise ValidationError("already wrapped")

        with self.assertRaises(ValidationError):
            raises_ours()

    def test_safe_execute(self):
        self.assertEqual(safe_execute(lambda: 1 / 0, default_value=-1), -1)
        self.assertEqual(safe_execute(lambda: 2), 2)

    def test_validation_helpers(self):
        """Test validation helper functions."""
        with self.assertRaises(ValidationError):
            validate_field_type({'features': 'nope'}, 'features', list)

        validate_field_type({'features': []}, 'features', list)

        with self.assertRaises(ValidationError):
            validate_numeric_range(-1, min_val=0)

        with self.assertRaises(ValidationError):
            validate_numeric_range(15, max_val=10)

        self.assertEqual(validate_numeric_range(7, min_val=5, max_val=10), 7)


class TestUtils(unittest.TestCase):
    """Test utility functions."""

    def test_text_utilities(self):
        self.assertEqual(coerce_text(None), '')
        self.assertEqual(coerce_text(12), '12')
        self.assertEqual(coerce_text(12.0), '12')
        self.assertEqual(coerce_text(True), 'true')
        self.assertEqual(normalize_text('Ahupuaa'), 'ahupuaa')
        self.assertEqual(normalize_text('Ahupuaa', case_sensitive=True), 'Ahupuaa')
        self.assertTrue(is_blank('   '))
        self.assertTrue(is_blank(None))
        self.assertFalse(is_blank(0))

    def test_formatting_utilities(self):
        self.assertEqual(format_number(1234.567, decimals=2), '1,234.57')
        self.assertEqual(format_number(1234, decimals=0), '1,234')
        self.assertEqual(format_number(None), 'N/A')
        self.assertEqual(format_area(4046.8564224, 'acres'), '1.00 acres')
        self.assertEqual(format_area(20000, 'hectares'), '2.00 ha')
        self.assertEqual(format_area(None), 'N/A')

    def test_collection_utilities(self):
        self.assertEqual(remove_duplicates(['b', 'a', 'b', 'c', 'a']), ['b', 'a', 'c'])
        self.assertTrue(is_sequence([]))
        self.assertTrue(is_sequence(()))
        self.assertFalse(is_sequence('abc'))
        self.assertFalse(is_sequence({'features': []}))


if __name__ == '__main__':
    # Run specific test groups
    import argparse

    parser = argparse.ArgumentParser()
    parser.add_argument('--config', action='store_true', help='Test config only')
    parser.add_argument('--exceptions', action='store_true', help='Test exceptions only')
    parser.add_argument('--utils', action='store_true', help='Test utils only')
    args = parser.parse_args()

    if args.config:
        suite = unittest.TestLoader().loadTestsFromTestCase(TestConfig)
    elif args.exceptions:
        suite = unittest.TestLoader().loadTestsFromTestCase(TestExceptions)
    elif args.utils:
        suite = unittest.TestLoader().loadTestsFromTestCase(TestUtils)
    else:
        suite = unittest.TestLoader().loadTestsFromModule(sys.modules[__name__])

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    sys.exit(0 if result.wasSuccessful() else 1)
