"""
FieldOps - Installation Scheduling Platform

This package contains the FieldOps backend services:
- scheduling: Conflict detection, resolution generation, recommendations and apply
- storage: Database adapters and repositories (Postgres via SQLAlchemy)
- api: FastAPI REST endpoints
- platform: Cross-cutting concerns (configuration, logging)
"""

__version__ = "0.1.0"
