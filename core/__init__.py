"""Hostel backend: models, services and the JSON API."""
