"""Killboard - read-only REST lookups and event streams for EVE Online data.

Killboard serves killmail, entity and static-data lookups from a relational
store, built with Python 3.13+ and FastAPI.

Architecture Overview:
- **API Layer**: FastAPI routes, middleware and error translation
- **Core Layer**: Configuration, logging, exceptions and request context
- **Validation Layer**: Declarative schemas turning raw request input into
  typed, constraint-checked values
- **Streaming Layer**: Server-Sent Event handles with a single, race-safe
  close path
- **Infrastructure Layer**: Async database sessions and the store capability
  injected into handlers

Every handler follows the same pipeline: validate the input, run one store
lookup (or none), and shape the response. Validation failures and lookup
misses are ordinary outcomes with fixed HTTP status codes; store and
transport failures are surfaced as generic server errors.
"""
