"""API route modules.

Route organization:
- auth: Session lifecycle, profile, wallet verification, proof, health
- users: Public lookups by wallet address
"""

from . import auth, users

__all__ = [
    "auth",
    "users",
]
