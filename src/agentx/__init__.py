"""agentx - markdown issue tracker for humans and coding agents."""

__version__ = "0.4.0"
