"""
Authentication Package

OAuth 2.0 authentication for YouTube API.
"""

from upload.auth.oauth_manager import OAuthManager, run_initial_auth

__all__ = [
    "OAuthManager",
    "run_initial_auth",
]
