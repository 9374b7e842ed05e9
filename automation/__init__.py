"""Workflow automation engine: rule matching, record mutation and scheduling."""
