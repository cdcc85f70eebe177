"""Cento: runs visual block programs on a wheeled, two-armed robot."""

__version__ = "0.1.0"
