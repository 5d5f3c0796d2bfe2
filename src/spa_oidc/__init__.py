"""OIDC/OAuth2 authentication-flow engine for single-page application clients."""

__version__ = "0.1.0"
