"""
Zoo API — ORM Models Package
==============================

Importing this package registers every table on `Base.metadata`, which is
what Alembic's env.py and the test fixtures rely on.
"""

from zoo_api.models.animal import Animal
from zoo_api.models.exhibit import Exhibit
from zoo_api.models.feeding import Feeding
from zoo_api.models.health_record import HealthRecord
from zoo_api.models.report import Report
from zoo_api.models.staff import Staff
from zoo_api.models.ticket import Ticket
from zoo_api.models.user import User
from zoo_api.models.visitor import Visit, Visitor

__all__ = [
    "Animal",
    "Exhibit",
    "Feeding",
    "HealthRecord",
    "Report",
    "Staff",
    "Ticket",
    "User",
    "Visit",
    "Visitor",
]
