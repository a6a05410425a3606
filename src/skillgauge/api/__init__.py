"""HTTP API for the assessment engine."""
