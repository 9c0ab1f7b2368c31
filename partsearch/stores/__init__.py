"""Data stores for persistence and caching.

Stores handle:
- PostgreSQL: DB session, catalog read queries (CatalogSource)
- Redis: shared short-lived caches with TTL

No ranking logic in stores - scoring belongs in services.
"""
