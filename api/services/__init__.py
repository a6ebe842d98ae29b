"""Service layer for business logic.

Layer hierarchy:
    Routes (HTTP) -> Services (Business Logic) -> Repositories (Database)
                                               -> Weatherstack (HTTP)

Services should:
- Contain all business rules and validation
- Orchestrate the store and the weather provider
- Raise domain exceptions, never HTTP errors

Services should NOT:
- Directly execute SQL queries (use repositories)
- Know about HTTP request/response details
"""
