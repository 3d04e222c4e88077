"""
Shared, cross-cutting code for the API.

`core/` holds the small building blocks features build on (settings,
logging, the database handle, the error taxonomy). Keep feature-specific SQL
and business logic in the corresponding feature package (e.g. `users/`).
"""
