"""Common Lambda utilities and base classes.

Provides foundational components for building Narra handlers including
the base handler class, API handler, logging, metrics and request models.
"""
