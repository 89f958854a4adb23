"""Lab application for the lab management backend.

This package contains models, serializers, services, views and route
registrations implementing the API contract expected by the lab
dashboard and the patient mobile app.
"""
