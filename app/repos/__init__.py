"""
Repository layer for data access operations.

Quote reads are built by the query builder (app.query); writes use the
ORM session directly.
"""
