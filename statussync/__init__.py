"""
Status Sync: incident-driven service health document.

Reads incident tickets (GitHub issues created from an issue form), keeps a
bounded history of the ones currently open, and derives the worst active
severity for every service in a fixed catalog.
"""

__version__ = "1.0.0"
