"""TabRotator - rotate browser tabs on a kiosk display."""

__version__ = "1.0.0"
__author__ = "TabRotator Team"
