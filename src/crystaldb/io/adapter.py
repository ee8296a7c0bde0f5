"""DatabaseAdapter abstract interface."""

from abc import ABC, abstractmethod

from crystaldb.core.schema import StoredUnitDocument, StoredUnitTypeDocument

from .query import UnitListQuery


class DatabaseAdapter(ABC):
    """Abstract interface for unit type and unit document storage.

    Adapters persist documents keyed by technical ids and look them up by
    either technical or business id. They never see business values: the
    facade encodes and maps ids before any call.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backing storage (create directories, load collections)."""
        pass

    @abstractmethod
    async def upsert_unit_type(self, document: StoredUnitTypeDocument) -> StoredUnitTypeDocument:
        """Insert or replace a unit type document, keyed by business id."""
        pass

    @abstractmethod
    async def find_unit_type_by_business_id(
        self, business_id: str
    ) -> StoredUnitTypeDocument | None:
        """Get a unit type document by business id."""
        pass

    @abstractmethod
    async def find_unit_type_by_id(self, type_id: str) -> StoredUnitTypeDocument | None:
        """Get a unit type document by technical id."""
        pass

    @abstractmethod
    async def insert_unit(self, document: StoredUnitDocument) -> StoredUnitDocument:
        """Insert a new unit document.

        Raises:
            DuplicateDocumentError: If the technical or business id is taken.
        """
        pass

    @abstractmethod
    async def replace_unit(self, document: StoredUnitDocument) -> StoredUnitDocument:
        """Replace the unit document with the same business id."""
        pass

    @abstractmethod
    async def find_unit_by_business_id(self, business_id: str) -> StoredUnitDocument | None:
        """Get a unit document by business id."""
        pass

    @abstractmethod
    async def find_unit_by_id(self, unit_id: str) -> StoredUnitDocument | None:
        """Get a unit document by technical id."""
        pass

    @abstractmethod
    async def list_units(self, query: UnitListQuery) -> list[StoredUnitDocument]:
        """List unit documents of one unit type matching ``query``."""
        pass
