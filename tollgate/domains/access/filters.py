"""Normalization of ``only_<kind>`` / ``except_<kind>`` query options.

List queries accept pairs of inclusion and exclusion options, for example
``only_actors`` and ``except_actors``. Callers pass entities, references,
fingerprint strings or (for non-polymorphic kinds) bare ids, singly or in
lists. :func:`partition_reference_filters` reduces such a pair to a canonical
:class:`ReferenceFilter` that query builders turn into WHERE clauses.

Rules:

* a missing key means no filtering on that side;
* ``only`` and ``except`` both present with a ``None`` value selects nothing;
* when both are lists, the ``except`` entries are removed from ``only`` and
  ``except`` is dropped;
* entries that cannot be normalized are dropped, never raised.
"""

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union

from tollgate.domains.access.references import Reference, Referenceable, split_fingerprint

FilterValue = Union[str, int]


@dataclass(frozen=True)
class ReferenceKind:
    """Describes one filterable dimension.

    Attributes:
        suffix: Option suffix, e.g. ``"actors"`` for ``only_actors``.
        polymorphic: Whether values are ``"Type/id"`` fingerprints (True) or
            integer ids of a single entity type (False).
        entity_type: For non-polymorphic kinds, the expected entity class or
            kind name. Instances and fingerprints of other kinds are dropped.
    """

    suffix: str
    polymorphic: bool = True
    entity_type: Any = None

    @property
    def only_key(self) -> str:
        return f"only_{self.suffix}"

    @property
    def except_key(self) -> str:
        return f"except_{self.suffix}"

    @property
    def entity_kind(self) -> Optional[str]:
        if self.entity_type is None:
            return None
        if isinstance(self.entity_type, str):
            return self.entity_type
        return getattr(self.entity_type, "__reference_kind__", None) or self.entity_type.__name__


ACTORS = ReferenceKind("actors")
TARGETS = ReferenceKind("targets")
GRANTS = ReferenceKind("grants", polymorphic=False, entity_type="AccessGrant")


@dataclass(frozen=True)
class ReferenceFilter:
    """Canonical only/except pair for one dimension.

    ``only`` and ``exclude`` are None when the corresponding option is absent
    or was given as None; ``has_only``/``has_exclude`` tell those apart.
    """

    kind: ReferenceKind
    only: Optional[tuple[FilterValue, ...]] = None
    exclude: Optional[tuple[FilterValue, ...]] = None
    has_only: bool = False
    has_exclude: bool = False

    @property
    def is_empty(self) -> bool:
        """True when the filter selects nothing (both options present and None)."""
        return (
            self.has_only and self.only is None and self.has_exclude and self.exclude is None
        )

    @property
    def is_unfiltered(self) -> bool:
        """True when the filter places no constraint on the dimension."""
        return self.only is None and self.exclude is None and not self.is_empty

    def as_options(self) -> dict[str, Optional[list[FilterValue]]]:
        """Render back to ``{only_<kind>, except_<kind>}``, omitting absent keys."""
        options: dict[str, Optional[list[FilterValue]]] = {}
        if self.has_only:
            options[self.kind.only_key] = list(self.only) if self.only is not None else None
        if self.has_exclude:
            options[self.kind.except_key] = (
                list(self.exclude) if self.exclude is not None else None
            )
        return options


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def _entity_reference(entry: Any) -> Optional[Reference]:
    if isinstance(entry, Reference):
        return entry
    if isinstance(entry, (str, int)) or entry is None:
        return None
    # Protocol checks read the property, so both steps can raise.
    try:
        if not isinstance(entry, Referenceable):
            return None
        ref = entry.reference
    except Exception:
        return None
    return ref if isinstance(ref, Reference) else None


def normalize_polymorphic_reference(entry: Any) -> Optional[str]:
    """Convert an entity, reference or fingerprint to a fingerprint string."""
    if isinstance(entry, str):
        kind, _ = split_fingerprint(entry)
        return entry if kind is not None else None
    ref = _entity_reference(entry)
    return ref.fingerprint if ref is not None else None


def normalize_reference_id(entry: Any, entity_kind: Optional[str]) -> Optional[int]:
    """Convert an id, numeric string, entity or fingerprint of ``entity_kind`` to an int id."""
    if isinstance(entry, bool):
        return None
    if isinstance(entry, int):
        return entry
    if isinstance(entry, str):
        if entry.isascii() and entry.isdigit():
            return int(entry)
        kind, ref_id = split_fingerprint(entry)
        if kind is None or kind != entity_kind:
            return None
        return int(ref_id) if ref_id.isascii() and ref_id.isdigit() else None
    ref = _entity_reference(entry)
    if ref is None or ref.kind != entity_kind:
        return None
    return int(ref.id) if ref.id.isascii() and ref.id.isdigit() else None


def _dedupe(values: list[FilterValue]) -> list[FilterValue]:
    seen: set[FilterValue] = set()
    out = []
    for v in values:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out


def partition_filter_lists(
    options: Mapping[str, Any],
    kind: ReferenceKind,
    convert: Callable[[list[Any]], list[FilterValue]],
) -> ReferenceFilter:
    """Partition an only/except option pair using ``convert`` to normalize each list."""
    has_only = kind.only_key in options
    has_exclude = kind.except_key in options
    raw_only = options.get(kind.only_key)
    raw_exclude = options.get(kind.except_key)

    only = _dedupe(convert(_as_list(raw_only))) if raw_only is not None else None
    exclude = _dedupe(convert(_as_list(raw_exclude))) if raw_exclude is not None else None

    if only is not None and exclude is not None:
        dropped = set(exclude)
        return ReferenceFilter(
            kind=kind,
            only=tuple(v for v in only if v not in dropped),
            has_only=True,
        )

    return ReferenceFilter(
        kind=kind,
        only=tuple(only) if only is not None else None,
        exclude=tuple(exclude) if exclude is not None else None,
        has_only=has_only,
        has_exclude=has_exclude,
    )


def partition_reference_filters(
    options: Optional[Mapping[str, Any]], kind: Union[ReferenceKind, str]
) -> ReferenceFilter:
    """Partition ``only_<kind>`` / ``except_<kind>`` options into a ReferenceFilter.

    Args:
        options: Query options; may be None.
        kind: A ReferenceKind, or a bare suffix for a polymorphic kind.

    Returns:
        The canonical filter. Never raises on bad entries; they are dropped.
    """
    if isinstance(kind, str):
        kind = ReferenceKind(kind)
    options = options or {}

    if kind.polymorphic:

        def convert(entries: list[Any]) -> list[FilterValue]:
            out = (normalize_polymorphic_reference(e) for e in entries)
            return [v for v in out if v is not None]

    else:
        entity_kind = kind.entity_kind

        def convert(entries: list[Any]) -> list[FilterValue]:
            out = (normalize_reference_id(e, entity_kind) for e in entries)
            return [v for v in out if v is not None]

    return partition_filter_lists(options, kind, convert)
