"""
HTTP server module.
Exposes the tracking relay to the frontend.
"""

from correios_relay.server.app import create_app, cors_headers

__all__ = ["create_app", "cors_headers"]
