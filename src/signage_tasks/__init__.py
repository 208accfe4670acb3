"""Scheduled task runner and designer toolbar state for a digital signage CMS."""

__version__ = "0.1.0"
