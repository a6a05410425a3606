"""Core data model, persistence and infrastructure."""
