"""Core framework: configuration, exceptions and structured logging."""
