class GeodesyError(Exception):
    """Base exception for coordinate conversion and distance failures."""


class InvalidInput(GeodesyError, ValueError):
    """Raised when a coordinate is non-finite or outside its valid domain."""


class ConversionDidNotConverge(GeodesyError):
    """Raised when the inverse-projection latitude solver hits its iteration cap."""
