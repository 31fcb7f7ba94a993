"""Pydantic schemas for the event gift API."""
