"""Shared kernel: configuration, errors, enums and id helpers."""
