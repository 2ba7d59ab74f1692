"""
utils/ - Shared Helpers
=======================
Logging, error types, the JSON codec and row value coercion.
Nothing in here touches the database.
"""
