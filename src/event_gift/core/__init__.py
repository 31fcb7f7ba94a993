"""Core configuration for the event gift service."""
