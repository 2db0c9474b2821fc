"""
Search and ranking across map layers and their features

A query is matched against layer names, layer ids, feature names and feature
ids. Each match is classified (exact, contains, fuzzy) and scored from the
fixed relevance bands in Config.RELEVANCE_BANDS; results are ordered by score
with ties kept in layer order, then feature order.
"""
import time
import logging
from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Sequence, Tuple

from config import Config, get_config
from exceptions import ValidationError, safe_execute
from color_palette import ColorInfo, ColorRegistry
from geometry import area_in_acres
from layer_registry import Layer, LayerRegistry, feature_properties, resolve_feature_id, resolve_feature_name
from utils import coerce_text, is_blank, is_sequence, log_function_call, normalize_text, remove_duplicates

logger = logging.getLogger(__name__)

EXACT = 'exact'
CONTAINS = 'contains'
FUZZY = 'fuzzy'

LAYER_RESULT = 'layer'
FEATURE_RESULT = 'feature'

POLYGONAL_TYPES = ('Polygon', 'MultiPolygon')


@dataclass
class SearchOptions:
    include_layer_names: bool = True
    include_feature_names: bool = True
    include_feature_ids: bool = True
    fuzzy_match: bool = Config.SEARCH['fuzzy_match']
    case_sensitive: bool = Config.SEARCH['case_sensitive']
    max_results: int = Config.SEARCH['max_results']

    @classmethod
    def from_config(cls, config=Config) -> 'SearchOptions':
        """Options seeded from a configuration profile's SEARCH settings."""
        return cls(
            fuzzy_match=config.SEARCH['fuzzy_match'],
            case_sensitive=config.SEARCH['case_sensitive'],
            max_results=config.SEARCH['max_results']
        )


@dataclass
class SearchResult:
    """One ranked match; feature is None for layer results."""

    kind: str
    layer: Layer
    name: str
    id: str
    relevance: int
    match_type: str
    feature: Optional[Dict[str, Any]] = None
    color: Optional[ColorInfo] = None
    area_acres: Optional[float] = None


def classify_match(candidate: Any, query: str, fuzzy: bool = True,
                   case_sensitive: bool = False,
                   prefix_length: int = Config.SEARCH['fuzzy_prefix_length']) -> Optional[str]:
    """
    Classify how a candidate string matches a query.

    Args:
        candidate: Layer/feature name or id
        query: Raw query string
        fuzzy: Allow a prefix match on the first characters of the query
        case_sensitive: Compare without lower-casing
        prefix_length: Number of leading query characters a fuzzy match needs

    Returns:
        'exact', 'contains', 'fuzzy' or None when there is no match
    """
    text = normalize_text(candidate, case_sensitive)
    needle = normalize_text(query, case_sensitive).strip()
    if not text or not needle:
        return None

    if text == needle:
        return EXACT
    if needle in text:
        return CONTAINS
    if fuzzy and needle[:prefix_length] in text:
        return FUZZY
    return None


def _best_match(candidates: List[Tuple[str, str, str]], query: str,
                options: SearchOptions, config=Config) -> Optional[Tuple[int, str, str]]:
    """
    Best scoring (relevance, match_type, band) among (band, text) candidates.

    Earlier candidates win ties.
    """
    best = None
    for band, text in candidates:
        match_type = classify_match(text, query, options.fuzzy_match, options.case_sensitive,
                                    config.SEARCH['fuzzy_prefix_length'])
        if match_type is None:
            continue
        relevance = config.get_relevance(band, match_type)
        if best is None or relevance > best[0]:
            best = (relevance, match_type, band)
    return best


def _has_valid_features(layer: Layer) -> bool:
    data = layer.data
    return isinstance(data, dict) and is_sequence(data.get('features'))


class SearchEngine:
    """
    Ranked search over the layers of a LayerRegistry.

    Relevance bands, fuzzy prefix length and result limits come from the
    configuration profile, get_config() unless one is passed in.
    """

    def __init__(self, registry: LayerRegistry, colors: Optional[ColorRegistry] = None, config=None):
        self.registry = registry
        self.colors = colors if colors is not None else ColorRegistry()
        self.config = config or get_config()

    def search(self, query: str, mode: str = 'all', options: Optional[SearchOptions] = None,
               active_layer_id: Optional[str] = None) -> List[SearchResult]:
        """
        Search layers and features.

        Args:
            query: Search text; a blank query returns no results
            mode: 'layers' (layer names/ids), 'features' (active layer's
                features) or 'all' (everything)
            options: Matching options, defaults to the profile's settings
            active_layer_id: Layer searched in 'features' mode; the
                registry's active layer when omitted

        Returns:
            Results sorted by descending relevance, at most
            options.max_results long

        Raises:
            ValidationError: If mode is not a known search mode
        """
        if not self.config.is_valid_search_mode(mode):
            raise ValidationError(
                f"Invalid search mode '{mode}'. Valid modes: {', '.join(self.config.SEARCH_MODES)}",
                field='mode'
            )

        options = options or SearchOptions.from_config(self.config)
        if is_blank(query):
            return []

        start = time.perf_counter()

        if mode == 'layers':
            layers = self.registry.layers
            include_layers, include_features = True, False
        elif mode == 'features':
            layer = (self.registry.get_layer(active_layer_id) if active_layer_id is not None
                     else self.registry.active_layer)
            layers = [layer] if layer is not None else []
            include_layers, include_features = False, True
        else:
            layers = self.registry.layers
            include_layers, include_features = options.include_layer_names, True

        results = []
        for layer in layers:
            if not _has_valid_features(layer):
                logger.warning(f"Skipping layer {layer.id!r} in search: malformed feature data")
                continue

            if include_layers:
                layer_result = self._match_layer(layer, query, options)
                if layer_result is not None:
                    results.append(layer_result)

            if include_features:
                results.extend(self._match_features(layer, query, options))

        # sorted() is stable, so ties keep layer then feature order
        ranked = sorted(results, key=lambda result: result.relevance, reverse=True)
        ranked = ranked[:max(options.max_results, 0)]

        for result in ranked:
            self._decorate(result)

        log_function_call(
            'search',
            {'query': query, 'mode': mode, 'layers': len(layers), 'results': len(ranked)},
            time.perf_counter() - start
        )
        return ranked

    def _match_layer(self, layer: Layer, query: str, options: SearchOptions) -> Optional[SearchResult]:
        # Name before id so the name wins a tie
        best = _best_match([('layer', layer.name), ('layer', layer.id)], query, options, self.config)
        if best is None:
            return None

        relevance, match_type, _ = best
        return SearchResult(
            kind=LAYER_RESULT,
            layer=layer,
            name=coerce_text(layer.name),
            id=coerce_text(layer.id),
            relevance=relevance,
            match_type=match_type
        )

    def _match_features(self, layer: Layer, query: str, options: SearchOptions) -> List[SearchResult]:
        results = []
        for feature in layer.features:
            if not isinstance(feature, dict):
                continue

            name = resolve_feature_name(feature, layer.name_property)
            feature_id = resolve_feature_id(feature)

            candidates = []
            if options.include_feature_names:
                candidates.append(('feature_name', name))
            if options.include_feature_ids and feature_id:
                candidates.append(('feature_id', feature_id))

            best = _best_match(candidates, query, options, self.config)
            if best is None:
                continue

            relevance, match_type, _ = best
            results.append(SearchResult(
                kind=FEATURE_RESULT,
                layer=layer,
                feature=feature,
                name=name,
                id=feature_id,
                relevance=relevance,
                match_type=match_type
            ))
        return results

    def _decorate(self, result: SearchResult) -> None:
        """Attach presentation metadata to a result that made the cut."""
        result.color = self.colors.assign_color(result.layer.id)

        if result.kind != FEATURE_RESULT:
            return

        geometry = result.feature.get('geometry')
        if isinstance(geometry, dict) and geometry.get('type') in POLYGONAL_TYPES:
            result.area_acres = safe_execute(
                lambda: area_in_acres(result.feature),
                default_value=None,
                error_message=f"Could not measure feature {result.id!r} in layer {result.layer.id!r}"
            )

    def get_suggestions(self, query: str, max_count: Optional[int] = None) -> List[str]:
        """
        Autocomplete suggestions for a partial query.

        Layer names, layer ids and feature names containing the query
        (case-insensitive), de-duplicated in order of first occurrence.
        Queries shorter than the profile's min_suggestion_length (2 by
        default) get no suggestions.
        """
        if max_count is None:
            max_count = self.config.SEARCH['max_suggestions']

        needle = coerce_text(query).strip().lower()
        if len(needle) < self.config.SEARCH['min_suggestion_length']:
            return []

        suggestions = []
        for layer in self.registry.layers:
            if not _has_valid_features(layer):
                continue

            for text in (layer.name, layer.id):
                if needle in coerce_text(text).lower():
                    suggestions.append(coerce_text(text))

            for feature in layer.features:
                if not isinstance(feature, dict):
                    continue
                value = feature_properties(feature).get(layer.name_property)
                if not is_blank(value) and needle in coerce_text(value).lower():
                    suggestions.append(coerce_text(value))

        return remove_duplicates(suggestions)[:max(max_count, 0)]


def search_across_layers(layers: Sequence[Layer], query: str,
                         options: Optional[SearchOptions] = None,
                         colors: Optional[ColorRegistry] = None, config=None) -> List[SearchResult]:
    """Combined ('all' mode) search over a plain list of layers."""
    return SearchEngine(LayerRegistry(layers), colors, config).search(query, 'all', options)


def get_search_suggestions(layers: Sequence[Layer], query: str,
                           max_count: Optional[int] = None, config=None) -> List[str]:
    return SearchEngine(LayerRegistry(layers), config=config).get_suggestions(query, max_count)
