"""Service layer for certification business logic.

Layer hierarchy:
    Routes (HTTP) -> Services (Business Logic) -> Repositories (Database)

Services raise the exceptions in ``services.errors``; routes translate them
into HTTP responses. The evaluation, aggregation and lifecycle rules
(``criteria_service``, ``progress_service``, ``certification_state``) are pure
and do no I/O.
"""
