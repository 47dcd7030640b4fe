"""Clinic application for the dental practice backend.

This package contains models, serializers, services, views and route
registrations implementing the JSON API consumed by the practice
front-end.
"""
