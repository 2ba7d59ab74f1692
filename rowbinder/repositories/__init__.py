"""
repositories/ - Data Access Layer
==================================
`RecordRepository` runs every record operation: it resolves the record's
descriptor, filters columns by privilege level, builds the SQL, executes
it and maps rows back into record instances.
"""
