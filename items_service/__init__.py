"""Items CRUD service with per-request observability."""
