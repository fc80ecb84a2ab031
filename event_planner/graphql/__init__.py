"""GraphQL API for the event planner service."""

from .schema import schema

__all__ = ["schema"]
