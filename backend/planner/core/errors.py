"""Error taxonomy shared by the planner services and the API layer."""

from __future__ import annotations


class PlannerError(Exception):
    """Base class for planner failures."""


class ValidationError(PlannerError):
    """Input refused locally: unknown field, missing project link, bad value."""


class NotFoundError(PlannerError):
    pass


class AllocationNotFoundError(NotFoundError):
    def __init__(self, allocation_id: int):
        super().__init__(f"Allocation {allocation_id} not found")
        self.allocation_id = allocation_id


class ProjectNotFoundError(NotFoundError):
    def __init__(self, project_id: int | None):
        super().__init__(f"Project {project_id} not found")
        self.project_id = project_id


class StoreError(PlannerError):
    """A create/update/delete call against the data store failed."""
