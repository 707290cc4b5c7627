"""ASGI middleware for cross-cutting request/response concerns.

- **SecurityHeadersMiddleware**: Adds security headers (HSTS, X-Frame-Options, etc.)
- **RequestContextMiddleware**: Manages correlation IDs and request context
- **RequestLoggingMiddleware**: Structured logging with performance tracking
- **error_handler**: Maps exceptions to error responses

All middleware is pure ASGI so event streams are forwarded frame by frame.
Order, outermost first: security headers, request context, request logging.
"""
