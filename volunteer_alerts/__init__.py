"""Proximity-based volunteer notification service."""
