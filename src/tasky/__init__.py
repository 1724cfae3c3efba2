"""Tasky - personal task manager with repeating tasks."""

__version__ = "0.1.0"
