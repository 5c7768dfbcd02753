"""State/store layer.

This package is the single source of truth for canonical entity instances:
one live instance per ``(type, primary key)`` pair, merged in place on
every upsert.
"""
