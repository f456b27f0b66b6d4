from planner.models.allocations import ResourceAllocation
from planner.models.clients import Client
from planner.models.org import Department, Employee
from planner.models.projects import Project, ProjectMember

__all__ = [
    "Client",
    "Department",
    "Employee",
    "Project",
    "ProjectMember",
    "ResourceAllocation",
]
