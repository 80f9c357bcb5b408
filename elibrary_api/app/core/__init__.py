"""Core infrastructure: configuration, database, security, logging and errors."""
