"""
services/ - Relationship Resolution
===================================
Orchestrates repository calls across record types (deep fetch).
"""
