"""ORM Models: SQLAlchemy declarative models.

Invariants:
    - All models inherit from Base (db/base.py)
    - Imported here so Base.metadata knows every table before create_all/alembic run
"""

from coach.models.participation_log import ParticipationLog  # noqa: F401
