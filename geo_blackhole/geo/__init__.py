from .maxmind import GeoCountryReader, record_country

__all__ = ["GeoCountryReader", "record_country"]
