"""
Mirror an OilFox summary document into the slot tree.

The summary is flattened one level deep:

    info.<field>                              top-level scalars
    <collection>.<index>.<field>              scalars of each device record
    <collection>.<index>.metering.<field>     scalars of its metering record

Nested objects and arrays anywhere else are ignored. TreeSynchronizer first
declares every slot the document needs (ensure_schema) and then writes the
values (apply_values).
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from .const import DEVICE_MAPPING_ID, DEVICE_MAPPING_POSITION
from .store import SLOT_BOOLEAN, SLOT_MIXED, SLOT_NUMBER, SLOT_STRING, SlotStore

_LOGGER = logging.getLogger(__name__)

INFO_PREFIX = "info"
METERING_KEY = "metering"
ID_KEY = "id"


def slot_type_of(value: Any) -> Optional[str]:
    """Return the slot type for a JSON value, or None if it is not a scalar."""
    # bool first: it is a subclass of int
    if isinstance(value, bool):
        return SLOT_BOOLEAN
    if isinstance(value, (int, float)):
        return SLOT_NUMBER
    if isinstance(value, str):
        return SLOT_STRING
    if value is None:
        return SLOT_MIXED
    return None


def slot_name(path: str) -> str:
    """Human readable slot name: the path without its group prefix."""
    parts = path.split(".")
    if parts[0] == INFO_PREFIX:
        return " ".join(parts[1:])
    return " ".join(parts[2:])


def _scalars(record: Mapping[str, Any]) -> Iterator[Tuple[str, Any]]:
    for key, value in record.items():
        if slot_type_of(value) is not None:
            yield key, value


def flatten_info(document: Mapping[str, Any]) -> List[Tuple[str, Any]]:
    """Return (path, value) pairs for the account-level scalar fields."""
    return [(f"{INFO_PREFIX}.{key}", value) for key, value in _scalars(document)]


def flatten_record(prefix: str, index: int, record: Mapping[str, Any]) -> List[Tuple[str, Any]]:
    """Return (path, value) pairs for one device record, metering last."""
    base = f"{prefix}.{index}"
    pairs = [(f"{base}.{key}", value) for key, value in _scalars(record)]

    metering = record.get(METERING_KEY)
    if isinstance(metering, Mapping):
        pairs.extend(
            (f"{base}.{METERING_KEY}.{key}", value) for key, value in _scalars(metering)
        )
    return pairs


def device_records(
    document: Mapping[str, Any], collection_key: str
) -> List[Optional[Mapping[str, Any]]]:
    """Return the device records of a summary in document order.

    Entries that are not objects become None so later records keep their
    position.
    """
    records = document.get(collection_key)
    if not isinstance(records, list):
        return []

    result: List[Optional[Mapping[str, Any]]] = []
    for position, record in enumerate(records):
        if isinstance(record, Mapping):
            result.append(record)
        else:
            _LOGGER.debug("Ignoring non-object record at %s[%d]", collection_key, position)
            result.append(None)
    return result


def flatten(
    document: Mapping[str, Any],
    collection_key: str = "devices",
    indices: Optional[Iterable[Optional[int]]] = None,
) -> List[Tuple[str, Any]]:
    """Flatten a summary document into (path, value) pairs in apply order.

    By default the Nth record maps to index N. ``indices`` overrides this per
    record; a None entry drops that record.
    """
    records = device_records(document, collection_key)
    if indices is None:
        indices = range(len(records))

    pairs = flatten_info(document)
    for index, record in zip(indices, records):
        if index is not None and record is not None:
            pairs.extend(flatten_record(collection_key, index, record))
    return pairs


class DeviceIndexTable:
    """Index -> device id table derived from the ``<collection>.<n>.id`` slots.

    An index bound to an id stays bound to it. Indices that have been declared
    but never received an id are handed out first, in ascending order, which
    keeps ensure_schema and apply_values in agreement within one cycle.
    """

    def __init__(self, store: SlotStore, collection_key: str) -> None:
        self._by_id: Dict[Any, int] = {}
        self._unbound: List[int] = []
        self._next = 0

        pattern = re.compile(rf"^{re.escape(collection_key)}\.(\d+)\.(.+)$")
        seen: Set[int] = set()
        for path in store.paths():
            match = pattern.match(path)
            if not match:
                continue
            index = int(match.group(1))
            self._next = max(self._next, index + 1)
            if match.group(2) != ID_KEY or index in seen:
                continue
            seen.add(index)

            device_id = store.read(path)
            if device_id:
                self._by_id.setdefault(device_id, index)
            else:
                self._unbound.append(index)

        self._unbound.sort()

    def index_of(self, device_id: Any) -> int:
        """Return the index bound to ``device_id``, binding a new one if needed."""
        if device_id in self._by_id:
            return self._by_id[device_id]

        if self._unbound:
            index = self._unbound.pop(0)
        else:
            index = self._next
            self._next += 1

        self._by_id[device_id] = index
        return index

    def missing(self, present: Iterable[Any]) -> List[Tuple[int, Any]]:
        """Return (index, id) pairs for bound ids not in ``present``."""
        present = set(present)
        return sorted(
            (index, device_id)
            for device_id, index in self._by_id.items()
            if device_id not in present
        )


class TreeSynchronizer:
    """Declare and update the slots for successive summary documents."""

    def __init__(
        self,
        store: SlotStore,
        collection_key: str = "devices",
        device_mapping: str = DEVICE_MAPPING_ID,
    ) -> None:
        if device_mapping not in (DEVICE_MAPPING_ID, DEVICE_MAPPING_POSITION):
            raise ValueError(f"Unknown device mapping: {device_mapping!r}")

        self._store = store
        self._collection_key = collection_key
        self._device_mapping = device_mapping
        # Ids already reported as missing, warned about once per absence
        self._reported_missing: Set[Any] = set()

    @property
    def collection_key(self) -> str:
        return self._collection_key

    def _indices(
        self, records: List[Optional[Mapping[str, Any]]], report: bool = False
    ) -> List[Optional[int]]:
        if self._device_mapping == DEVICE_MAPPING_POSITION:
            return list(range(len(records)))

        table = DeviceIndexTable(self._store, self._collection_key)
        indices: List[Optional[int]] = []
        present: Set[Any] = set()
        for position, record in enumerate(records):
            if record is None:
                indices.append(None)
                continue
            device_id = record.get(ID_KEY)
            if not device_id or slot_type_of(device_id) is None:
                if report:
                    _LOGGER.warning(
                        "Skipping %s[%d]: record has no usable id",
                        self._collection_key,
                        position,
                    )
                indices.append(None)
                continue
            if device_id in present:
                if report:
                    _LOGGER.warning(
                        "Skipping %s[%d]: duplicate id %s",
                        self._collection_key,
                        position,
                        device_id,
                    )
                indices.append(None)
                continue
            present.add(device_id)
            indices.append(table.index_of(device_id))

        if report:
            missing = table.missing(present)
            for index, device_id in missing:
                log = (
                    _LOGGER.debug
                    if device_id in self._reported_missing
                    else _LOGGER.warning
                )
                log(
                    "Device %s (slot %s.%d) is missing from the summary; keeping its last values",
                    device_id,
                    self._collection_key,
                    index,
                )
            self._reported_missing = {device_id for _, device_id in missing}
        return indices

    def ensure_schema(self, document: Mapping[str, Any]) -> Set[str]:
        """Declare a slot for every scalar leaf of ``document``.

        Existing slots are left untouched, including their declared type.
        Returns the set of slot paths the document maps to.
        """
        records = device_records(document, self._collection_key)
        pairs = flatten(document, self._collection_key, self._indices(records))

        created = 0
        for path, value in pairs:
            if self._store.declare(path, slot_type_of(value), slot_name(path)):
                created += 1

        if created:
            _LOGGER.debug("Declared %d new slot(s)", created)
        return {path for path, _ in pairs}

    def apply_values(self, document: Mapping[str, Any]) -> int:
        """Write the current values of ``document`` into its slots.

        Returns the number of slots written.
        """
        records = device_records(document, self._collection_key)
        indices = self._indices(records, report=True)

        written = 0
        for path, value in flatten_info(document):
            self._store.write(path, value)
            written += 1

        for index, record in zip(indices, records):
            if index is None or record is None:
                continue
            if self._device_mapping == DEVICE_MAPPING_POSITION and not self._same_device(
                index, record
            ):
                continue
            for path, value in flatten_record(self._collection_key, index, record):
                self._store.write(path, value)
                written += 1

        return written

    def _same_device(self, index: int, record: Mapping[str, Any]) -> bool:
        """Positional mode: only write a device whose slot is free or already its own."""
        stored = self._store.read(f"{self._collection_key}.{index}.{ID_KEY}")
        incoming = record.get(ID_KEY)
        if not stored or stored == incoming:
            return True

        _LOGGER.warning(
            "Slot %s.%d belongs to device %s, not %s; skipping update",
            self._collection_key,
            index,
            stored,
            incoming,
        )
        return False

    def sync(self, document: Mapping[str, Any]) -> int:
        """Run ensure_schema followed by apply_values."""
        self.ensure_schema(document)
        return self.apply_values(document)
