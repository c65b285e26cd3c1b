"""Session authentication module for streamchat."""

from .authenticator import SessionAuthenticator

__all__ = ["SessionAuthenticator"]
