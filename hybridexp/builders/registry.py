"""
Builder Registry for dispatching implementations to their builders.

The registry maps MPI implementation identifiers to Builder instances.
Lookups are case-insensitive so that "OpenMPI" and "openmpi" resolve to the
same builder while the identifier itself is kept verbatim elsewhere (image
and result file names).
"""

from hybridexp.builders.base import Builder
from hybridexp.errors import UnregisteredImplementationError
from hybridexp.schemas import ImplementationInfo


class BuilderRegistry:
    """
    Registry for builder dispatch by implementation id.

    Usage:
        registry = BuilderRegistry()
        registry.register("openmpi", OpenMPIBuilder())

        builder = registry.load(implementation)

        # Or use factory with defaults
        registry = BuilderRegistry.create_default()
    """

    def __init__(self) -> None:
        """Initialize an empty builder registry."""
        self._builders: dict[str, Builder] = {}

    @staticmethod
    def _key(implementation_id: str) -> str:
        return implementation_id.strip().lower()

    def register(self, implementation_id: str, builder: Builder) -> None:
        """
        Register a builder for an implementation id.

        Args:
            implementation_id: Implementation identifier (e.g. openmpi)
            builder: Builder instance for this implementation
        """
        self._builders[self._key(implementation_id)] = builder

    def get(self, implementation_id: str) -> Builder:
        """
        Get the builder for an implementation id.

        Raises:
            UnregisteredImplementationError: If no builder is registered
        """
        key = self._key(implementation_id)
        if key not in self._builders:
            raise UnregisteredImplementationError(implementation_id, self.list_implementations())
        return self._builders[key]

    def load(self, implementation: ImplementationInfo) -> Builder:
        """Get the builder for an implementation."""
        return self.get(implementation.id)

    def has(self, implementation_id: str) -> bool:
        """Check if a builder is registered for an implementation id."""
        return self._key(implementation_id) in self._builders

    def list_implementations(self) -> list[str]:
        """List registered implementation ids."""
        return sorted(self._builders.keys())

    @classmethod
    def create_default(cls) -> "BuilderRegistry":
        """
        Create a registry with the builders shipped with hybridexp.

        Registered:
        - openmpi: OpenMPIBuilder
        - mpich: MPICHBuilder
        """
        from hybridexp.builders.autotools import MPICHBuilder, OpenMPIBuilder

        registry = cls()
        registry.register("openmpi", OpenMPIBuilder())
        registry.register("mpich", MPICHBuilder())
        return registry
