"""Clipboard history store and action configuration engine"""

__version__ = "1.0.0"
