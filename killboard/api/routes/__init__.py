"""HTTP routes.

- **health**: Service and database status
- **lookups**: Single-entity reads through the store
- **pricing**: Item price resolution
- **killmail**: Killmail page redirect
- **stream**: Diagnostic event stream
"""

from fastapi import APIRouter

from killboard.api.routes import health, killmail, lookups, pricing, stream

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(pricing.router)
api_router.include_router(lookups.router)
api_router.include_router(killmail.router)
api_router.include_router(stream.router)

__all__ = ["api_router"]
