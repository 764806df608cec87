"""
Repositories.

Data access layer over the SQLAlchemy models.
"""
