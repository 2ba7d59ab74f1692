"""
db/ - Database Layer
====================
Connection providers, SQL generation, search predicates, statement
execution and row mapping. This layer knows nothing about access levels
or relationships; callers hand it already-filtered columns.
"""
