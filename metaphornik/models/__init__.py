"""ORM Models — SQLAlchemy declarative models for persisted analyses.

Invariants:
    - All models inherit from Base (db/base.py)

Design Decisions:
    - Models imported here so Base.metadata is complete before create_all / autogenerate
"""

from metaphornik.models.stored_analysis import StoredAnalysisRow  # noqa: F401
