"""
Configuration management for Farm Maps layer search
"""
import os
from typing import Dict, List, Any

class Config:
    """Application configuration."""

    DEBUG = os.getenv('FARMMAPS_DEBUG', 'False').lower() == 'true'

    # Search Configuration
    SEARCH = {
        'max_results': int(os.getenv('FARMMAPS_MAX_RESULTS', '50')),
        'max_suggestions': 8,
        'min_suggestion_length': 2,
        'fuzzy_prefix_length': 3,
        'fuzzy_match': True,
        'case_sensitive': False
    }

    # Relevance bands (candidate -> match type -> score)
    RELEVANCE_BANDS = {
        'layer': {'exact': 100, 'contains': 50, 'fuzzy': 25},
        'feature_name': {'exact': 90, 'contains': 40, 'fuzzy': 20},
        'feature_id': {'exact': 80, 'contains': 30, 'fuzzy': 15}
    }

    SEARCH_MODES = ('layers', 'features', 'all')

    # Layer Defaults
    DEFAULT_NAME_PROPERTY = 'name'
    UNNAMED_FEATURE = 'Unnamed Feature'

    # Property keys probed (in order) for a feature identifier
    FEATURE_ID_PROPERTIES = ('objectid', 'id')

    DEFAULT_LAYER_STYLE = {
        'fill': {'color': '#0888', 'opacity': 0.2},
        'line': {'color': '#088', 'width': 2}
    }

    MERGED_LAYER_STYLE = {
        'fill': {'color': '#666', 'opacity': 0.3},
        'line': {'color': '#666', 'width': 1}
    }

    # Geodesy
    ELLIPSOID = 'WGS84'

    # Square meters -> unit
    AREA_CONVERSIONS = {
        'square_meters': 1.0,
        'acres': 0.000247105,
        'hectares': 0.0001,
        'square_feet': 10.763910417,
        'square_kilometers': 0.000001
    }

    # Meters -> unit
    LENGTH_CONVERSIONS = {
        'meters': 1.0,
        'kilometers': 0.001,
        'miles': 1 / 1609.344,
        'feet': 1 / 0.3048
    }

    AREA_UNIT_LABELS = {
        'square_meters': 'm²',
        'acres': 'acres',
        'hectares': 'ha',
        'square_feet': 'ft²',
        'square_kilometers': 'km²'
    }

    SIMPLIFY_TOLERANCE = 0.01

    @classmethod
    def get_relevance(cls, candidate: str, match_type: str) -> int:
        """Get the relevance score for a candidate kind and match type."""
        return cls.RELEVANCE_BANDS[candidate][match_type]

    @classmethod
    def is_valid_search_mode(cls, mode: str) -> bool:
        """Check if search mode is valid."""
        return mode in cls.SEARCH_MODES

    @classmethod
    def is_valid_area_unit(cls, unit: str) -> bool:
        """Check if area unit is supported."""
        return unit in cls.AREA_CONVERSIONS

    @classmethod
    def is_valid_length_unit(cls, unit: str) -> bool:
        """Check if length unit is supported."""
        return unit in cls.LENGTH_CONVERSIONS

    @classmethod
    def get_area_label(cls, unit: str) -> str:
        """Get display label for area unit."""
        return cls.AREA_UNIT_LABELS.get(unit, unit)

    @classmethod
    def default_style(cls) -> Dict[str, Dict[str, Any]]:
        """Get a fresh copy of the default layer style."""
        return {part: dict(values) for part, values in cls.DEFAULT_LAYER_STYLE.items()}

    @classmethod
    def merged_style(cls) -> Dict[str, Dict[str, Any]]:
        """Get a fresh copy of the merged layer style."""
        return {part: dict(values) for part, values in cls.MERGED_LAYER_STYLE.items()}

    @classmethod
    def validate_config(cls) -> List[str]:
        """Validate configuration and return any errors."""
        errors = []

        if cls.SEARCH['max_results'] <= 0:
            errors.append("Search max_results must be positive")

        if cls.SEARCH['fuzzy_prefix_length'] <= 0:
            errors.append("Fuzzy prefix length must be positive")

        # Bands must rank exact > contains > fuzzy for every candidate kind
        for candidate, bands in cls.RELEVANCE_BANDS.items():
            if not bands['exact'] > bands['contains'] > bands['fuzzy']:
                errors.append(f"Relevance bands for '{candidate}' are not strictly ordered")

        for unit, factor in cls.AREA_CONVERSIONS.items():
            if factor <= 0:
                errors.append(f"Area conversion for '{unit}' must be positive")

        return errors


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration; result limit pinned regardless of environment."""
    DEBUG = True

    SEARCH = {
        **Config.SEARCH,
        'max_results': 50
    }


def get_config(env: str = None) -> Config:
    """Get configuration based on environment."""
    env = env or os.getenv('FARMMAPS_ENV', 'development')

    config_map = {
        'development': DevelopmentConfig,
        'production': ProductionConfig,
        'testing': TestingConfig
    }

    return config_map.get(env, DevelopmentConfig)
