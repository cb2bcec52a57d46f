"""Mail provider adapters."""

from .base import MailProvider
from .guerrilla import GuerrillaMailProvider
from .mailtm import MailTmProvider
from .onesecmail import OneSecMailProvider

__all__ = [
    "MailProvider",
    "GuerrillaMailProvider",
    "MailTmProvider",
    "OneSecMailProvider",
]
