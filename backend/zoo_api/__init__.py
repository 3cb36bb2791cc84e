"""
Zoo API — Application Package
===============================

What:  Backend for zoo operations: animals and exhibits, visitors and
       tickets, veterinary and feeding schedules, staff, reports.

Layers:
    ┌─────────────────────────────────────┐
    │  routes/        HTTP surface        │  envelope, status codes, roles
    ├─────────────────────────────────────┤
    │  services/      business rules      │  capacity guard, ticket ids,
    │                                     │  visitor aggregates, schedules
    ├─────────────────────────────────────┤
    │  models/ + schemas/                 │  SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │  database.py    async sessions      │  one transaction per request
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
