"""
Repositories

Keyed in-memory stores for projects, accounts and ledger entries, with
secondary indices for the hot query paths (projects by issuer and by
status). Writes replace a record as a whole, so every write is atomic per
entity and reads always return the latest committed state.
"""

from collections import defaultdict
from typing import Any, Generic, Iterator, TypeVar

from pydantic import BaseModel

from bluetrust.enums import EntryKind, ProjectStatus
from bluetrust.types import HolderAccount, IssuerAccount, LedgerEntry, Project


ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """Base repository with keyed lookup and optional secondary indices"""

    # Field names maintained as value -> {id: None} indices (insertion ordered)
    indexed_fields: tuple[str, ...] = ()

    def __init__(self):
        self._records: dict[str, ModelType] = {}
        self._indices: dict[str, defaultdict[Any, dict[str, None]]] = {
            field: defaultdict(dict) for field in self.indexed_fields
        }

    def create(self, obj: ModelType) -> ModelType:
        """
        Create a new record

        Raises:
            KeyError: A record with the same id already exists
        """
        if obj.id in self._records:
            raise KeyError(obj.id)
        self._store(obj)
        return obj

    def get(self, id: str) -> ModelType | None:
        return self._records.get(id)

    def exists(self, id: str) -> bool:
        return id in self._records

    def get_all(self, skip: int = 0, limit: int | None = None) -> list[ModelType]:
        """
        Get all records in insertion order with pagination

        Args:
            skip: Number of records to skip
            limit: Maximum number of records to return (None: no limit)
        """
        records = list(self._records.values())[skip:]
        return records if limit is None else records[:limit]

    def find_by(self, field: str, value: Any) -> list[ModelType]:
        """
        Get records whose indexed field equals value, in insertion order

        Raises:
            KeyError: field is not indexed
        """
        bucket = self._indices[field].get(value, {})
        return [self._records[id] for id in bucket]

    def update(self, obj: ModelType) -> ModelType:
        """
        Replace an existing record

        Raises:
            KeyError: Record does not exist
        """
        if obj.id not in self._records:
            raise KeyError(obj.id)
        self._store(obj)
        return obj

    def __iter__(self) -> Iterator[ModelType]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)

    def _store(self, obj: ModelType) -> None:
        previous = self._records.get(obj.id)
        for field, index in self._indices.items():
            if previous is not None:
                old_value = getattr(previous, field)
                if old_value != getattr(obj, field):
                    index[old_value].pop(previous.id, None)
            index[getattr(obj, field)].setdefault(obj.id, None)
        self._records[obj.id] = obj


class ProjectRepository(BaseRepository[Project]):
    """Repository for projects"""

    indexed_fields = ("issuer_id", "status")

    def get_by_issuer(self, issuer_id: str) -> list[Project]:
        return self.find_by("issuer_id", issuer_id)

    def get_by_status(self, *statuses: ProjectStatus) -> list[Project]:
        """Get projects in any of the given statuses, oldest first"""
        projects = [project for status in statuses for project in self.find_by("status", status)]
        return sorted(projects, key=lambda project: project.created_at)


class IssuerRepository(BaseRepository[IssuerAccount]):
    """Repository for issuer accounts"""


class HolderRepository(BaseRepository[HolderAccount]):
    """Repository for holder accounts"""


class LedgerEntryRepository:
    """
    Append-only audit log of ledger entries.

    Entries are keyed by their sequence number and indexed by account id.
    """

    def __init__(self):
        self._entries: list[LedgerEntry] = []
        self._by_account: defaultdict[str, list[int]] = defaultdict(list)

    @property
    def next_sequence(self) -> int:
        return len(self._entries) + 1

    def append(self, entry: LedgerEntry) -> LedgerEntry:
        if entry.sequence != self.next_sequence:
            raise ValueError(f"Expected sequence {self.next_sequence}, got {entry.sequence}")
        self._entries.append(entry)
        for account_id in {entry.source, entry.destination} - {None}:
            self._by_account[account_id].append(entry.sequence)
        return entry

    def replace(self, entry: LedgerEntry) -> None:
        """Replace an entry in place (anchor reference updates only)"""
        self._entries[entry.sequence - 1] = entry

    def query(self, account_id: str | None = None, kind: EntryKind | None = None) -> list[LedgerEntry]:
        """
        Query the audit log

        Args:
            account_id: Only entries where the account is source or destination
            kind: Only entries of this kind
        """
        if account_id is None:
            entries = list(self._entries)
        else:
            entries = [self._entries[sequence - 1] for sequence in self._by_account.get(account_id, [])]
        if kind is not None:
            entries = [entry for entry in entries if entry.kind == kind]
        return entries

    def total(self, kind: EntryKind) -> int:
        return sum(entry.amount for entry in self._entries if entry.kind == kind)

    def __len__(self) -> int:
        return len(self._entries)
