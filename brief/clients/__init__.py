"""Chat-completion clients."""
