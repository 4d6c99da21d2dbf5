"""FastAPI middleware for cross-cutting request/response concerns.

- **RequestContextMiddleware**: Assigns the per-request correlation ID
- **RequestLoggingMiddleware**: Emits the incoming/completed/failed events
- **error_handler**: The single boundary turning exceptions into responses

Middleware order, outermost first:
1. Request context (sets up correlation IDs)
2. Request logging (logs with correlation context)
3. Error boundary (converts exceptions the routing layer leaves unhandled)
4. Exception handlers (normalize framework and taxonomy errors)
"""
