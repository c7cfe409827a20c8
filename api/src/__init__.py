"""FastAPI service for TravelBud accounts, profiles and favourites.

This package provides the REST endpoints the TravelBud client uses to
register, sign in and keep its profile and favourites in sync.
"""

__version__ = "1.0.0"
