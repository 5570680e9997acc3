"""Constants shared across the batterywarn package."""

from typing import Final

# Power-level thresholds in percent (inclusive, lowest band wins)
PERCENT_CRITICAL: Final = 2.0
PERCENT_VERY_LOW: Final = 5.0
PERCENT_LOW: Final = 10.0

# Notification hint keys understood by the desktop notification server
HINT_SNAP_DECISIONS: Final = "x-canonical-snap-decisions"
HINT_SNAP_DECISIONS_TIMEOUT: Final = "x-canonical-snap-decisions-timeout"
HINT_NON_SHAPED_ICON: Final = "x-canonical-non-shaped-icon"
HINT_AFFIRMATIVE_TINT: Final = "x-canonical-private-affirmative-tint"
HINT_SOUND_FILE: Final = "sound-file"

# Largest value an int32 hint can carry; used as "wait forever"
INT32_MAX: Final = 2**31 - 1

# Notify() expire_timeout values
EXPIRES_DEFAULT: Final = -1
EXPIRES_NEVER: Final = 0

# Capability token reported by servers that support actions
CAPABILITY_ACTIONS: Final = "actions"

# Action identifiers attached to interactive warnings
ACTION_DISMISS: Final = "dismiss"
ACTION_SETTINGS: Final = "settings"

# D-Bus names
NOTIFICATIONS_BUS_NAME: Final = "org.freedesktop.Notifications"
NOTIFICATIONS_OBJECT_PATH: Final = "/org/freedesktop/Notifications"
UPOWER_BUS_NAME: Final = "org.freedesktop.UPower"
UPOWER_DEVICE_INTERFACE: Final = "org.freedesktop.UPower.Device"
UPOWER_DISPLAY_DEVICE_PATH: Final = "/org/freedesktop/UPower/devices/DisplayDevice"
ACCOUNTS_BUS_NAME: Final = "org.freedesktop.Accounts"
ACCOUNTS_USER_PATH_PREFIX: Final = "/org/freedesktop/Accounts/User"
ACCOUNTS_SOUND_INTERFACE: Final = "com.ubuntu.touch.AccountsService.Sound"
ACCOUNTS_SILENT_MODE_PROPERTY: Final = "SilentMode"
PROPERTIES_INTERFACE: Final = "org.freedesktop.DBus.Properties"

# Exported state object
BUS_NAME: Final = "org.batterywarn"
BATTERY_INTERFACE: Final = "org.batterywarn.Battery"
DEFAULT_BUS_PATH: Final = "/org/batterywarn/Battery"

# Sound lookup defaults
DEFAULT_SOUNDS_DIR: Final = "/usr/share/sounds"
DEFAULT_SOUND_THEME: Final = "freedesktop"
DEFAULT_SOUND_FILE: Final = "battery-low.oga"
DEFAULT_SOUND_FALLBACK: Final = "freedesktop/stereo/dialog-warning.oga"
