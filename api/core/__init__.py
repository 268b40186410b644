"""
Shared, cross-cutting code for the API.

`core/` should contain small building blocks that the service uses
(DB wiring, settings, logging). Keep log-specific SQL and query logic
in the `logs/` package.
"""
