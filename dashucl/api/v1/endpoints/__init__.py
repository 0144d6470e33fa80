from dashucl.api.v1.endpoints import client_config, reminders, settings

__all__ = [
    "settings",
    "reminders",
    "client_config",
]
