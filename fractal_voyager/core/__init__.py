"""Recurrence model and iteration engine."""
