"""Command handlers and application wiring."""
