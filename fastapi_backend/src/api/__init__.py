"""
API package for the student productivity backend.

Modules:
- db: PostgreSQL connection pooling + query gateway
- bootstrap: create-if-absent schema, column migrations and seeding
- seeds: baseline tasks and courses
- codecs: row <-> JSON mapping per entity
- schemas: Pydantic models for the REST API
- main: FastAPI app and route handlers
"""
