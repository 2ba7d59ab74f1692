"""
security/ - Column Access Control
=================================
Privilege-level filtering of the columns an operation may read or write.
"""
