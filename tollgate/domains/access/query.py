"""SQLAlchemy query builders for access grants.

Options understood by :func:`grant_filter_clauses`:

* ``only_actors`` / ``except_actors``: actor entities, references or fingerprints.
* ``only_targets`` / ``except_targets``: target entities, references or fingerprints.
* ``only_grants`` / ``except_grants``: grant ids (or grants, or ``AccessGrant/<id>``).
* ``permissions``: permission names, instances or classes. ``None`` is ignored.
* ``permissions_all`` / ``permissions_any``: integer masks (or decimal and
  ``0x`` strings). A grant matches when its stored mask holds every bit, or
  any bit, of the option. Resolve names with ``PermissionRegistry.mask_for``
  first; ``AccessService`` does so for its callers.
* ``target_types``: target kind names or entity classes. ``None`` is ignored.
* ``created_after`` / ``created_before``: datetime, ISO-8601 string or UNIX seconds.
"""

from typing import Any, Mapping, Optional

from sqlalchemy import ColumnElement, Select, String, and_, cast, false, func, select

from tollgate.core.datetime_utils import parse_timestamp
from tollgate.domains.access.exceptions import UnknownPermissionError
from tollgate.domains.access.filters import (
    ACTORS,
    GRANTS,
    TARGETS,
    ReferenceFilter,
    partition_reference_filters,
)
from tollgate.domains.access.permissions import permission_name
from tollgate.domains.access.protocols import PermissionRegistryProtocol
from tollgate.domains.access.references import resolve_reference
from tollgate.domains.access.registry import parse_mask
from tollgate.models.access_grant import AccessGrant


def reference_filter_clause(
    reference_filter: ReferenceFilter, column: Any
) -> Optional[ColumnElement[bool]]:
    """Turn a partitioned filter into a WHERE clause on ``column``.

    Returns None when the filter does not constrain the column, and a
    constant-false clause when it selects nothing.
    """
    if reference_filter.is_empty:
        return false()
    if reference_filter.only is not None:
        return column.in_(list(reference_filter.only))
    if reference_filter.exclude:
        return column.not_in(list(reference_filter.exclude))
    return None


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def _kind_name(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value or None
    if isinstance(value, type):
        kind = getattr(value, "reference_kind", None)
        return kind() if callable(kind) else value.__name__
    return None


MASK_OPTIONS = ("permissions_all", "permissions_any")


def mask_option(value: Any) -> Optional[int]:
    """OR together the integer masks of a ``permissions_all``/``permissions_any`` value.

    Returns None when the option is None.

    Raises:
        TypeError: For entries that are not integer masks, such as permission names.
    """
    if value is None:
        return None
    mask = 0
    for entry in _as_list(value):
        if entry is None:
            continue
        numeric = parse_mask(entry)
        if numeric is None:
            raise TypeError(f"Expected an integer permission mask, got {entry!r}")
        mask |= numeric
    return mask


def grant_filter_clauses(options: Optional[Mapping[str, Any]]) -> list[ColumnElement[bool]]:
    """Build the WHERE clauses for a grant listing from query options."""
    options = options or {}
    clauses: list[ColumnElement[bool]] = []

    for kind, column in (
        (ACTORS, AccessGrant.actor_fingerprint),
        (TARGETS, AccessGrant.target_fingerprint),
        (GRANTS, AccessGrant.id),
    ):
        clause = reference_filter_clause(partition_reference_filters(options, kind), column)
        if clause is not None:
            clauses.append(clause)

    if options.get("permissions") is not None:
        names = [n for n in map(permission_name, _as_list(options["permissions"])) if n]
        clauses.append(AccessGrant.permission.in_(names))

    if options.get("target_types") is not None:
        kinds = [k for k in map(_kind_name, _as_list(options["target_types"])) if k]
        clauses.append(AccessGrant.target_type.in_(kinds))

    # A zero "all" mask places no constraint; a zero "any" mask matches nothing.
    all_mask = mask_option(options.get("permissions_all"))
    if all_mask:
        clauses.append(AccessGrant.permission_mask.op("&")(all_mask) == all_mask)
    any_mask = mask_option(options.get("permissions_any"))
    if any_mask is not None:
        clauses.append(AccessGrant.permission_mask.op("&")(any_mask) != 0)

    created_after = parse_timestamp(options.get("created_after"))
    if created_after is not None:
        clauses.append(AccessGrant.created_at > created_after)
    created_before = parse_timestamp(options.get("created_before"))
    if created_before is not None:
        clauses.append(AccessGrant.created_at < created_before)

    return clauses


def build_grant_query(
    options: Optional[Mapping[str, Any]] = None,
    *,
    skip: int = 0,
    limit: Optional[int] = None,
) -> Select:
    """Select grants matching ``options``, oldest first."""
    query = select(AccessGrant).where(*grant_filter_clauses(options)).order_by(AccessGrant.id)
    if skip:
        query = query.offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return query


def build_grant_count_query(options: Optional[Mapping[str, Any]] = None) -> Select:
    """Count grants matching ``options``."""
    return select(func.count(AccessGrant.id)).where(*grant_filter_clauses(options))


def accessible_permission_names(
    registry: PermissionRegistryProtocol, permission: Any
) -> list[str]:
    """Names whose grant gives access to ``permission``: itself, its grantors and owner."""
    registered = registry.lookup(permission)
    if registered is None:
        raise UnknownPermissionError(permission)
    names = {registered.name, *registry.grantors(registered.name)}
    owner = registry.lookup("owner")
    if owner is not None:
        names.add(owner.name)
    return sorted(names)


def accessible_query(
    model: Any,
    actor: Any,
    permission: Any,
    registry: PermissionRegistryProtocol,
) -> Select:
    """Select ``model`` rows on which ``actor`` holds ``permission`` through a grant.

    Grantors of ``permission`` and the owner grant count as holding it. Owners
    recorded only on the target row (no owner grant) are not found here.

    Args:
        model: A mapped class with an integer ``id`` and a ``reference_kind()``.
        actor: The actor entity, reference or fingerprint.
        permission: Requested permission.
        registry: Finalized permission registry.

    Raises:
        ReferenceResolutionError: If ``actor`` cannot be resolved.
        UnknownPermissionError: If ``permission`` is not registered.
    """
    actor_ref = resolve_reference(actor)
    kind = model.reference_kind() if hasattr(model, "reference_kind") else model.__name__
    join_on = and_(
        AccessGrant.target_type == kind,
        AccessGrant.target_id == cast(model.id, String),
    )
    return (
        select(model)
        .join(AccessGrant, join_on)
        .where(
            AccessGrant.actor_fingerprint == actor_ref.fingerprint,
            AccessGrant.permission.in_(accessible_permission_names(registry, permission)),
        )
        .distinct()
        .order_by(model.id)
    )
