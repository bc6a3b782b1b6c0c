"""HTTP API for the consult agent service."""
