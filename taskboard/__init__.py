"""Taskboard: role-gated task claiming service."""
