"""Event store, event bus and the event-sourced session repository."""
