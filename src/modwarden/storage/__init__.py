"""Durable storage for warning records."""
