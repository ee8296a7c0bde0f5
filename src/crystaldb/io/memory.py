"""In-memory implementation of DatabaseAdapter."""

from crystaldb.core.schema import StoredUnitDocument, StoredUnitTypeDocument

from .adapter import DatabaseAdapter
from .errors import DuplicateDocumentError
from .query import UnitListQuery, run_query


class InMemoryDatabaseAdapter(DatabaseAdapter):
    """In-memory implementation of DatabaseAdapter for testing and development.

    Documents are held in dicts keyed by business id, in insertion order.
    Lookups by technical id scan linearly. Stored models are frozen, so
    returning them directly never leaks mutable state.
    """

    def __init__(self) -> None:
        """Initialize empty collections."""
        self._unit_types: dict[str, StoredUnitTypeDocument] = {}
        self._units: dict[str, StoredUnitDocument] = {}

    async def initialize(self) -> None:
        """Nothing to prepare."""
        return None

    async def upsert_unit_type(self, document: StoredUnitTypeDocument) -> StoredUnitTypeDocument:
        """Insert or replace a unit type document, keyed by business id."""
        self._unit_types[document.business_id] = document
        return document

    async def find_unit_type_by_business_id(
        self, business_id: str
    ) -> StoredUnitTypeDocument | None:
        """Get a unit type document by business id."""
        return self._unit_types.get(business_id)

    async def find_unit_type_by_id(self, type_id: str) -> StoredUnitTypeDocument | None:
        """Get a unit type document by technical id."""
        for document in self._unit_types.values():
            if document.id == type_id:
                return document
        return None

    async def insert_unit(self, document: StoredUnitDocument) -> StoredUnitDocument:
        """Insert a new unit document."""
        if document.business_id in self._units:
            raise DuplicateDocumentError(f'Unit "{document.business_id}" already exists')
        if any(existing.id == document.id for existing in self._units.values()):
            raise DuplicateDocumentError(f'Unit document id "{document.id}" already exists')
        self._units[document.business_id] = document
        return document

    async def replace_unit(self, document: StoredUnitDocument) -> StoredUnitDocument:
        """Replace the unit document with the same business id."""
        self._units[document.business_id] = document
        return document

    async def find_unit_by_business_id(self, business_id: str) -> StoredUnitDocument | None:
        """Get a unit document by business id."""
        return self._units.get(business_id)

    async def find_unit_by_id(self, unit_id: str) -> StoredUnitDocument | None:
        """Get a unit document by technical id."""
        for document in self._units.values():
            if document.id == unit_id:
                return document
        return None

    async def list_units(self, query: UnitListQuery) -> list[StoredUnitDocument]:
        """List unit documents of one unit type matching ``query``."""
        return run_query(list(self._units.values()), query)
