from dashucl.services.auth import OAuthCallbackService
from dashucl.services.proxy import UCLProxyService
from dashucl.services.reminders import ReminderCoordinator, ReminderScheduler
from dashucl.services.settings import SettingsStore

__all__ = [
    "OAuthCallbackService",
    "ReminderCoordinator",
    "ReminderScheduler",
    "SettingsStore",
    "UCLProxyService",
]
