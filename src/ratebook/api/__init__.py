"""HTTP API for the rating engine."""
