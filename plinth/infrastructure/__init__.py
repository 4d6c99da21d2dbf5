"""Infrastructure layer for optional backing services.

Key responsibilities:
- **database**: Async PostgreSQL with SQLAlchemy 2.0+ and a generic repository
- **cache**: Redis client handle
- **secrets**: HashiCorp Vault client used while loading configuration

Each service handle exposes ``start()``/``stop()`` and a liveness ``check()``
so the bootstrap layer can manage it as a service module.
"""
