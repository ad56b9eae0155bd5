"""HTTP API for zkauth (FastAPI).

Import the app factory from zkauth.api.server:
    from zkauth.api.server import create_app
"""

__all__: list[str] = []
