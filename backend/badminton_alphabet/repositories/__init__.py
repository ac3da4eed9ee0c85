"""Session-scoped persistence helpers; every method takes the caller's ``Session``."""
