"""Core utilities: access control, security, caching, transactions."""
