"""Utility helpers for Todo Scheduler."""
