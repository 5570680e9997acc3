"""Low-battery warning daemon.

Watches the primary battery, decides with hysteresis when to raise or
clear a desktop notification, and exports the derived power level and
warning flag on the bus.
"""

__version__ = "0.3.0"
