"""Notification channel abstraction and its desktop backend.

This package provides:
- Notification / NotificationAction: the handle the notifier builds and shows
- NotificationChannel: protocol consumed by the notifier
- CapabilityCache: one-shot memoized capability query
- SoundLocator / SettingsLauncher: collaborators used by interactive warnings
- DesktopNotificationChannel: org.freedesktop.Notifications over dbus-next
"""
