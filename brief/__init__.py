"""brief - conversational-state engine for an interactive chat client."""

__version__ = "0.1.0"
