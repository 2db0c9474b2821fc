"""
Custom exceptions for Farm Maps layer search
"""
from typing import Dict, Any, Optional
import functools
import logging

logger = logging.getLogger(__name__)


class FarmMapsError(Exception):
    """Base exception for Farm Maps."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

        # Log the error
        logger.error(f"{self.__class__.__name__}: {message}", extra={'details': self.details})


class ValidationError(FarmMapsError):
    """Input validation errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, field: Optional[str] = None):
        super().__init__(message, details)
        self.field = field

        if field:
            self.details['field'] = field


class GeometryError(FarmMapsError):
    """Geometry processing errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, original_error: Optional[Exception] = None):
        super().__init__(message, details)
        self.original_error = original_error

        if original_error:
            self.details['original_error'] = str(original_error)
            self.details['error_type'] = type(original_error).__name__


class InvalidInputError(GeometryError):
    """Empty or degenerate input to a shape-dependent computation."""


class DuplicateLayerError(FarmMapsError):
    """Layer id already present in a registry."""

    def __init__(self, layer_id: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"Layer with ID {layer_id} already exists", details)
        self.layer_id = layer_id
        self.details['layer_id'] = layer_id


class LayerNotFoundError(FarmMapsError):
    """Layer id not present in a registry."""

    def __init__(self, layer_id: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"Layer with ID {layer_id} not found", details)
        self.layer_id = layer_id
        self.details['layer_id'] = layer_id


class ConfigurationError(FarmMapsError):
    """Configuration errors."""


# Error handling decorators
def handle_geometry_error(func):
    """Decorator for wrapping shapely/pyproj failures into GeometryError."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except FarmMapsError:
            # Already one of ours
            raise
        except Exception as e:
            # Import here to keep exceptions importable without GEOS
            from shapely.errors import GEOSException, ShapelyError

            if isinstance(e, GEOSException):
                raise GeometryError(
                    "Geometry operation failed",
                    details={"function": func.__name__},
                    original_error=e
                )
            elif isinstance(e, ShapelyError):
                raise GeometryError(
                    "Invalid geometry",
                    details={"function": func.__name__},
                    original_error=e
                )
            elif isinstance(e, (KeyError, TypeError, ValueError, IndexError, AttributeError)):
                raise GeometryError(
                    "Malformed feature",
                    details={"function": func.__name__},
                    original_error=e
                )
            raise

    return wrapper


def safe_execute(func, default_value=None, error_message="Operation failed"):
    """
    Safely execute a function with error handling.

    Args:
        func: Function to execute
        default_value: Value to return if function fails
        error_message: Custom error message for logging

    Returns:
        Function result or default_value if error occurs
    """
    try:
        return func()
    except Exception as e:
        logger.warning(f"{error_message}: {str(e)}")
        return default_value


def validate_field_type(data: Dict[str, Any], field: str, expected_type: type, required: bool = True) -> None:
    """
    Validate that a field has the expected type.

    Args:
        data: Data dictionary to validate
        field: Field name to validate
        expected_type: Expected type
        required: Whether field is required

    Raises:
        ValidationError: If field type is incorrect
    """
    if field not in data:
        if required:
            raise ValidationError(f"Field '{field}' is required", field=field)
        return

    if not isinstance(data[field], expected_type):
        expected_name = getattr(expected_type, '__name__', str(expected_type))
        raise ValidationError(
            f"Field '{field}' must be of type {expected_name}",
            details={'expected_type': expected_name, 'actual_type': type(data[field]).__name__},
            field=field
        )


def validate_numeric_range(value: float, min_val: float = None, max_val: float = None, field_name: str = "value") -> float:
    """
    Validate that a numeric value is within specified range.

    Args:
        value: Value to validate
        min_val: Minimum allowed value
        max_val: Maximum allowed value
        field_name: Name of field for error messages

    Returns:
        Validated value

    Raises:
        ValidationError: If value is out of range
    """
    if min_val is not None and value < min_val:
        raise ValidationError(
            f"{field_name} must be at least {min_val}",
            details={'min_value': min_val, 'actual_value': value},
            field=field_name
        )

    if max_val is not None and value > max_val:
        raise ValidationError(
            f"{field_name} must be at most {max_val}",
            details={'max_value': max_val, 'actual_value': value},
            field=field_name
        )

    return value
