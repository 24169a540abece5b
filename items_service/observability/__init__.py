"""Request observability for the items service.

Request ids and trace ids bound into structlog loggers, Prometheus metrics on a
per-process registry, and OpenTelemetry span correlation.
"""
