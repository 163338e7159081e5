"""HTTP API for Division."""
