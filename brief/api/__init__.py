"""HTTP API for the conversation engine."""
