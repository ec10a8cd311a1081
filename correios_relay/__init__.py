"""
Correios tracking relay.
Forwards package-tracking lookups to the Correios API for the frontend.
"""

__version__ = "1.0.0"
