"""
HTTP API package for cubeview.
"""

from cubeview.api.app import create_app

__all__ = ["create_app"]
