from .geodesy import ConversionDidNotConverge, GeodesyError, InvalidInput

__all__ = [
    "ConversionDidNotConverge",
    "GeodesyError",
    "InvalidInput",
]
