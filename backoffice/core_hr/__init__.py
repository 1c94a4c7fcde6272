"""Core HR module — Employee, Customer, ResourceAllocation models and lookups."""

from backoffice.core_hr.models import Customer, Employee, ResourceAllocation

__all__ = ["Employee", "Customer", "ResourceAllocation"]
