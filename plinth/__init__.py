"""Plinth - backend service scaffold with a shared cross-cutting request pipeline.

Plinth is a FastAPI service skeleton whose value lies in the infrastructure every
feature reuses rather than in any business logic of its own.

Architecture Overview:
- **Core Layer**: Exception taxonomy, masking, correlation context, logging and
  immutable configuration
- **Bootstrap Layer**: Declarative assembly of optional backing services and
  configuration loaders at process start
- **Infrastructure Layer**: Database, cache and secret-store handles
- **API Layer**: FastAPI application, middleware and the global error boundary

Optional services (PostgreSQL, Redis, HashiCorp Vault) are switched on with the
``USE_DATABASE``, ``USE_REDIS`` and ``USE_VAULT`` environment flags; nothing else
in the code base branches on them.
"""
