"""
Tracking integration module.
Talks to the Correios token and tracking endpoints.
"""

from correios_relay.tracking.carrier_api import CorreiosAPI
from correios_relay.tracking.token_manager import TokenManager

__all__ = ["CorreiosAPI", "TokenManager"]
