"""Records of which applications are asking for locations."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from .ipc import Parcel

MAX_RECORD_COUNT = 100


@dataclass(frozen=True)
class _Entry:
    uid: int
    pid: int
    name: str


class WorkRecord:
    """An ordered list of (uid, pid, name) entries and a device id."""

    def __init__(self, device_id: str = "") -> None:
        self._entries: list[_Entry] = []
        self.device_id = device_id

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[tuple[int, int, str]]:
        for entry in self._entries:
            yield entry.uid, entry.pid, entry.name

    def __str__(self) -> str:
        body = "".join(f"{e.uid},{e.pid},{e.name}; " for e in self._entries)
        return f"[{body}]"

    def is_empty(self) -> bool:
        return not self._entries

    def add(self, uid: int, pid: int, name: str) -> bool:
        """Add an entry; entries of one uid stay together. False if already present."""
        index = len(self._entries)
        for i, entry in enumerate(self._entries):
            if entry.uid == uid:
                if entry.name == name:
                    return False
                index = i
                break
        self._entries.insert(index, _Entry(uid, pid, name))
        return True

    def _delete_first(self, predicate) -> bool:
        for i, entry in enumerate(self._entries):
            if predicate(entry):
                del self._entries[i]
                return True
        return False

    def remove(self, uid: int, pid: int, name: str) -> bool:
        """Remove the first entry with this uid and name."""
        return self._delete_first(lambda e: e.uid == uid and e.name == name)

    def remove_name(self, name: str) -> bool:
        """Remove the first entry with this name."""
        return self._delete_first(lambda e: e.name == name)

    def find(self, uid: int, name: str) -> bool:
        return any(e.uid == uid and e.name == name for e in self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def set(self, other: WorkRecord) -> None:
        """Replace the entries with those of another record."""
        entries = list(other)
        self.clear()
        for uid, pid, name in entries:
            self.add(uid, pid, name)

    def _entry(self, index: int) -> _Entry | None:
        if 0 <= index < len(self._entries):
            return self._entries[index]
        return None

    def uid(self, index: int) -> int:
        entry = self._entry(index)
        return entry.uid if entry else -1

    def pid(self, index: int) -> int:
        entry = self._entry(index)
        return entry.pid if entry else -1

    def name(self, index: int) -> str:
        entry = self._entry(index)
        return entry.name if entry else ""

    def marshal(self, parcel: Parcel) -> None:
        parcel.write_int32(len(self._entries))
        for entry in self._entries:
            parcel.write_int32(entry.uid)
            parcel.write_int32(entry.pid)
            parcel.write_string(entry.name)
        parcel.write_string(self.device_id)

    def marshal_work_record(self, parcel: Parcel) -> None:
        """Write the count, then the uids and then the names as separate arrays."""
        count = len(self._entries)
        parcel.write_int32(count)
        parcel.write_int32(count)
        for entry in self._entries:
            parcel.write_int32(entry.uid)
        parcel.write_int32(count)
        for entry in self._entries:
            parcel.write_string16(entry.name)

    @classmethod
    def unmarshal(cls, parcel: Parcel) -> WorkRecord:
        record = cls()
        count = min(parcel.read_int32(), MAX_RECORD_COUNT)
        for _ in range(count):
            uid = parcel.read_int32()
            pid = parcel.read_int32()
            name = parcel.read_string()
            record.add(uid, pid, name)
        record.device_id = parcel.read_string()
        return record