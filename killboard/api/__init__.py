"""HTTP API layer built on FastAPI.

Key components:
- **main**: Application factory and lifecycle management
- **routes**: Lookup, pricing, redirect, health and diagnostic stream endpoints
- **middleware**: Security headers, correlation IDs, request logging and
  exception-to-response mapping
- **schemas**: Error response bodies
- **utils**: orjson response class

Handlers receive validated input and an injected store; they never touch
the database session or raw request parameters directly.
"""
