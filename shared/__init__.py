"""
Shared infrastructure for dropcart.

- `shared.config` for environment-based configuration
- `shared.logging` for structlog-based structured logging
- `shared.store` for the Redis-backed settings store and message relay

The engine, the worker and the API treat `shared/` as infrastructure and
avoid introducing service-specific coupling here.
"""
