"""
Utility functions for Farm Maps layer search
"""
import logging
from typing import Optional, Dict, Any, List, Union

from config import Config

logger = logging.getLogger(__name__)


# ====================
# TEXT UTILITIES
# ====================

def coerce_text(value: Any) -> str:
    """
    Convert a property value to text for matching.

    Args:
        value: Scalar property value (string, number, boolean or None)

    Returns:
        Text form of the value, empty string for None
    """
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def normalize_text(value: Any, case_sensitive: bool = False) -> str:
    """
    Normalize a candidate or query string for comparison.

    Args:
        value: Value to normalize
        case_sensitive: Keep original casing when True

    Returns:
        Normalized string
    """
    text = coerce_text(value)
    return text if case_sensitive else text.lower()


def is_blank(value: Any) -> bool:
    """Check whether a value is None or whitespace only."""
    return not coerce_text(value).strip()


# ====================
# DATA FORMATTING UTILITIES
# ====================

def format_number(value: Union[int, float, None], decimals: int = 2, use_commas: bool = True) -> str:
    """
    Format number with proper decimals and thousand separators.

    Args:
        value: Numeric value to format
        decimals: Number of decimal places
        use_commas: Whether to use comma separators

    Returns:
        Formatted string
    """
    if value is None:
        return "N/A"

    try:
        if use_commas:
            return f"{float(value):,.{decimals}f}"
        return f"{float(value):.{decimals}f}"
    except (TypeError, ValueError):
        return str(value)


def format_area(square_meters: Optional[float], unit: str = 'acres', decimals: int = 2) -> str:
    """
    Format an area for on-screen labels.

    Args:
        square_meters: Area in square meters
        unit: Target unit key from Config.AREA_CONVERSIONS
        decimals: Number of decimal places

    Returns:
        Label such as "12.50 acres"
    """
    if square_meters is None:
        return "N/A"

    factor = Config.AREA_CONVERSIONS.get(unit)
    if factor is None:
        logger.warning(f"Unknown area unit '{unit}', falling back to square meters")
        unit, factor = 'square_meters', 1.0

    return f"{format_number(square_meters * factor, decimals)} {Config.get_area_label(unit)}"


# ====================
# COLLECTION UTILITIES
# ====================

def remove_duplicates(lst: List[Any], preserve_order: bool = True) -> List[Any]:
    """
    Remove duplicates from list.

    Args:
        lst: List with potential duplicates
        preserve_order: Whether to preserve original order

    Returns:
        List without duplicates
    """
    if preserve_order:
        seen = set()
        return [item for item in lst if not (item in seen or seen.add(item))]
    else:
        return list(set(lst))


def is_sequence(value: Any) -> bool:
    """Check for a list/tuple (strings and mappings do not count)."""
    return isinstance(value, (list, tuple))


# ====================
# LOGGING UTILITIES
# ====================

def log_function_call(func_name: str, args: Dict[str, Any] = None, duration: float = None) -> None:
    """
    Log function call details.

    Args:
        func_name: Name of function
        args: Function arguments (large collections are summarised)
        duration: Execution duration in seconds
    """
    log_data = {'function': func_name}

    if args:
        filtered_args = {}
        for key, value in args.items():
            if isinstance(value, (list, dict)) and len(str(value)) > 500:
                filtered_args[key] = f'[{type(value).__name__} with {len(value)} items]'
            else:
                filtered_args[key] = value

        log_data['args'] = filtered_args

    if duration is not None:
        log_data['duration'] = f"{duration:.3f}s"

    logger.debug(f"Function call: {func_name}", extra={'call': log_data})
