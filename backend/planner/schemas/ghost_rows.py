from __future__ import annotations

from enum import Enum

from sqlmodel import SQLModel

from planner.schemas.allocations import AllocationRead
from planner.schemas.projects import ClientRead, ProjectRead


class GhostEntry(SQLModel):
    client_name: str = ""
    job_number: str = ""
    title: str = ""

    def normalized(self) -> GhostEntry:
        return GhostEntry(
            client_name=self.client_name.strip(),
            job_number=self.job_number.strip(),
            title=self.title.strip(),
        )

    @property
    def is_empty(self) -> bool:
        return not (self.client_name.strip() or self.job_number.strip() or self.title.strip())


class GhostOutcome(str, Enum):
    LINKED = "linked"
    CREATED = "created"
    NEEDS_DISAMBIGUATION = "needs_disambiguation"
    NOOP = "noop"
    FAILED = "failed"


class GhostResolveRequest(SQLModel):
    employee_id: int
    year: int
    week_number: int
    entry: GhostEntry


class GhostResolution(SQLModel):
    outcome: GhostOutcome
    allocation: AllocationRead | None = None
    project: ProjectRead | None = None
    client: ClientRead | None = None
    created_project: bool = False
    created_client: bool = False
