"""TravelBud client: API access, session handling and the user state cache.

The client keeps a session-scoped ``UserStateCache`` in sync with the API.
Profile fields are updated optimistically and rolled back on failure;
favourites are applied locally and confirmed by the server before the call
returns.
"""

__version__ = "1.0.0"
