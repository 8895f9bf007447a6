"""HTTP API for the marketplace order workflow."""
