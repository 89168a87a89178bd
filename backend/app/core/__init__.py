"""Core application wiring: settings, logging, middleware, lifecycle."""
