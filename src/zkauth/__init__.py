"""zkauth - identity-to-session lifecycle for zkLogin wallets.

Binds an OIDC identity token to a derived wallet address and issues the
application's own revocable session credentials.
"""

__version__ = "0.1.0"
