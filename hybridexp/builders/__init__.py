"""MPI builders: host installation and container image creation."""

from hybridexp.builders.autotools import AutotoolsBuilder, MPICHBuilder, OpenMPIBuilder
from hybridexp.builders.base import Builder
from hybridexp.builders.registry import BuilderRegistry

__all__ = [
    "AutotoolsBuilder",
    "Builder",
    "BuilderRegistry",
    "MPICHBuilder",
    "OpenMPIBuilder",
]
