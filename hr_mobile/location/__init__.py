"""Location stamping for attendance."""

from .geocoder import Coordinates, ReverseGeocoder, format_location

__all__ = ["Coordinates", "ReverseGeocoder", "format_location"]
