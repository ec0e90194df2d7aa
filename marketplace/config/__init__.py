from marketplace.config.settings import MarketplaceConfig, get_settings

__all__ = ["MarketplaceConfig", "get_settings"]
