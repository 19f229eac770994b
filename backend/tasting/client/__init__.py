"""Python client for the tasting server: JSON API calls and the live session feed."""
from tasting.client.api import TastingClient, parse_recovery_fragment
from tasting.client.feed import SessionFeed

__all__ = ['TastingClient', 'SessionFeed', 'parse_recovery_fragment']
