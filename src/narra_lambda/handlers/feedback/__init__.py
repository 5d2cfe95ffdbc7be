"""Subscriber facing endpoints of the private story blog."""
