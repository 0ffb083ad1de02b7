"""Kernel – errors, value types, clock and domain event definitions."""
