"""HTTP API layer built on FastAPI.

Key components:
- **main**: Application factory and lifecycle management
- **middleware**: Correlation context, request logging and the error boundary
- **schemas**: Response models for OpenAPI documentation
- **utils**: orjson response classes

The API layer is the application's HTTP boundary: every failure that reaches
it is normalized to an ``ErrorRecord`` and returned as JSON.
"""
