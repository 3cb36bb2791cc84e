"""
Zoo API — Pydantic Request/Response Schemas
=============================================

What:  The API contract, one module per resource plus `common` for the
       response envelope, error body and health payload.
How:   Request models forbid unknown fields so derived values (occupancy,
       visitor aggregates, ticket state) cannot be smuggled in. Response
       models read straight from ORM rows (`from_attributes`).
"""
