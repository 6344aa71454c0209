from accounts.utils.config.env import Settings, settings

__all__ = ["Settings", "settings"]
