from typing import Optional

from pricesim.config import Settings, get_settings
from pricesim.providers.base import OfflineQuoteProvider, QuoteProvider
from pricesim.providers.yahoo import YahooQuoteProvider


def get_provider(settings: Optional[Settings] = None) -> QuoteProvider:
    """
    Provider loader / factory.

    Reads PROVIDER from config and returns an instance of the selected provider.
    This is the single place that knows about concrete providers.
    """
    settings = settings or get_settings()
    provider_name = settings.provider.strip().upper()

    if provider_name == "YAHOO":
        return YahooQuoteProvider(
            base_url=settings.quote_base_url,
            timeout_seconds=settings.quote_timeout_seconds,
        )
    if provider_name == "OFFLINE":
        return OfflineQuoteProvider()

    raise ValueError(f"Unknown PROVIDER='{settings.provider}'. Expected: YAHOO or OFFLINE")
