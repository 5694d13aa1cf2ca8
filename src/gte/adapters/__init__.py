"""Collaborator adapters: file storage and notifications."""

from gte.adapters.files import FileStorageError, FileStore, LocalFileStore
from gte.adapters.notify import LoggingNotifier, Notifier, WebhookNotifier, build_notifier

__all__ = [
    "FileStorageError",
    "FileStore",
    "LocalFileStore",
    "LoggingNotifier",
    "Notifier",
    "WebhookNotifier",
    "build_notifier",
]
