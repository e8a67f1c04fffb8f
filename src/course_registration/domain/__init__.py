"""Domain layer: value objects, events, aggregates and replay.

This package defines the registration primitives that every other
layer depends on but never modifies.  Everything here is immutable.
"""
