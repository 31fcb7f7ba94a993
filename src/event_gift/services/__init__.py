"""Service layer for the event gift API."""
