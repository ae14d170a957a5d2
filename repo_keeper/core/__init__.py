"""Orchestration of fleet-wide operations."""

from .fleet_keeper import FleetKeeper

__all__ = ["FleetKeeper"]
