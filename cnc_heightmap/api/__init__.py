"""HTTP API for the active height map."""
