"""Grant storage against SQLite: CRUD, filtered listing, checks and cascades."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from tests.integration.storage.entities import Document, Member
from tollgate import crud, schemas
from tollgate.core.datetime_utils import utc_now_naive
from tollgate.core.exceptions import ImmutableFieldError
from tollgate.db.unit_of_work import UnitOfWork
from tollgate.domains.access.checker import AccessChecker
from tollgate.domains.access.query import accessible_query
from tollgate.domains.access.references import Reference
from tollgate.domains.access.repository import GrantRepository

# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_and_find(db, members, documents):
    bob, doc = members[1], documents[0]
    obj_in = schemas.AccessGrantCreate.from_references(doc.reference, bob.reference, "read", 0x04)

    grant = await crud.access_grant.create(db, obj_in=obj_in)

    assert grant.id is not None
    assert grant.target_fingerprint == f"Document/{doc.id}"
    assert grant.actor_reference == bob.reference
    assert grant.created_at is not None
    assert await crud.access_grant.find(db, doc.reference, bob.reference, "read") is grant
    assert await crud.access_grant.find(db, doc.reference, bob.reference, "write") is None
    assert schemas.AccessGrant.model_validate(grant).permission_mask == 0x04


@pytest.mark.asyncio
async def test_find_all_for_keeps_insertion_order(db, service, members, documents):
    bob, doc = members[1], documents[2]
    for name in ("index", "manage", "read"):
        await service.grant_permission(db, name, bob, doc)

    grants = await crud.access_grant.find_all_for(db, doc.reference, bob.reference)

    assert [g.permission for g in grants] == ["index", "manage", "read"]


@pytest.mark.asyncio
async def test_grants_cannot_be_updated(db, service, members, documents):
    grant = await service.grant_permission(db, "read", members[1], documents[0])

    grant.permission = "manage"
    with pytest.raises(ImmutableFieldError):
        await db.commit()
    await db.rollback()


@pytest.mark.asyncio
async def test_remove_without_uow_commits(db, service, members, documents):
    grant = await service.grant_permission(db, "read", members[1], documents[0])

    await service.destroy_grant(db, grant)

    assert await crud.access_grant.get(db, grant.id) is None


# ---------------------------------------------------------------------------
# Listing with reference filters
# ---------------------------------------------------------------------------


@pytest.fixture
def seed(db, service, members, documents):
    async def _seed():
        alice, bob, carol = members
        plan, report, memo = documents
        return [
            await service.grant_permission(db, "owner", alice, plan),
            await service.grant_permission(db, "read", bob, plan),
            await service.grant_permission(db, "edit", carol, plan),
            await service.grant_permission(db, "manage", bob, report),
            await service.grant_permission(db, "read", carol, memo),
        ]

    return _seed


@pytest.mark.asyncio
async def test_list_only_and_except(db, service, seed, members, documents):
    grants = await seed()
    alice, bob, carol = members
    plan = documents[0]

    listed = await service.list_grants(db, {"only_targets": plan, "except_actors": [alice]})
    assert [g.id for g in listed] == [grants[1].id, grants[2].id]

    listed = await service.list_grants(
        db, {"only_actors": [alice, bob, carol], "except_actors": ["Member/2"]}
    )
    assert [g.actor_fingerprint for g in listed] == ["Member/1", "Member/3", "Member/3"]


@pytest.mark.asyncio
async def test_list_both_none_returns_nothing(db, service, seed):
    await seed()

    options = {"only_targets": None, "except_targets": None, "permissions": ["read"]}
    assert await service.list_grants(db, options) == []
    assert await service.count_grants(db, options) == 0


@pytest.mark.asyncio
async def test_list_by_grant_ids_and_permissions(db, service, seed):
    grants = await seed()

    listed = await service.list_grants(
        db, {"only_grants": [grants[0].id, str(grants[3].id), f"AccessGrant/{grants[4].id}"]}
    )
    assert [g.id for g in listed] == [grants[0].id, grants[3].id, grants[4].id]

    assert await service.count_grants(db, {"permissions": "read"}) == 2
    assert await service.count_grants(db, {"except_grants": [grants[0]]}) == 4


@pytest.mark.asyncio
async def test_list_by_target_type_and_paging(db, service, seed):
    await seed()

    assert await service.count_grants(db, {"target_types": [Document]}) == 5
    assert await service.count_grants(db, {"target_types": "Member"}) == 0

    page = await service.list_grants(db, {}, skip=1, limit=2)
    assert [g.permission for g in page] == ["read", "edit"]


@pytest.mark.asyncio
async def test_list_by_permission_mask(db, service, seed):
    await seed()

    assert await service.count_grants(db, {"permissions_all": "read"}) == 4
    assert await service.count_grants(db, {"permissions_all": ["read", "delete"]}) == 1
    assert await service.count_grants(db, {"permissions_any": ["delete", "owner"]}) == 2
    editors = await service.list_grants(db, {"permissions_all": "edit"})
    assert [g.permission for g in editors] == ["edit", "manage"]

    assert await crud.access_grant.count_by_options(db, {"permissions_any": "0x01"}) == 1
    assert await crud.access_grant.count_by_options(db, {"permissions": None}) == 5


@pytest.mark.asyncio
async def test_list_created_window(db, members, documents):
    bob, doc = members[1], documents[0]
    now = utc_now_naive()
    for days, name in ((10, "read"), (5, "write"), (1, "delete")):
        obj_in = schemas.AccessGrantCreate.from_references(doc.reference, bob.reference, name)
        await crud.access_grant.create(
            db, obj_in={**obj_in.model_dump(), "created_at": now - timedelta(days=days)}
        )

    listed = await crud.access_grant.list_by_options(
        db,
        {
            "created_after": (now - timedelta(days=7)).isoformat(),
            "created_before": now - timedelta(days=2),
        },
    )
    assert [g.permission for g in listed] == ["write"]


# ---------------------------------------------------------------------------
# Access checks
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_checker_against_database(db, registry, service, members, documents):
    alice, bob, carol = members
    plan, report, memo = documents
    checker = AccessChecker(registry, GrantRepository())

    await service.grant_permission(db, "edit", bob, memo)
    await service.grant_permission(db, "manage", bob, memo)

    assert await checker.access_check(db, "write", bob, memo) == "edit"
    assert await checker.access_check(db, "delete", bob, memo) == "manage"
    assert await checker.access_check(db, "delete", alice, plan) == "delete"
    assert await checker.access_check(db, "read", carol, memo) is None
    assert await checker.access_check(db, "read", alice, memo) is None


@pytest.mark.asyncio
async def test_stored_owner_grant_authorizes_plain_references(db, registry, service, members):
    alice, bob, _ = members
    doc = Document(title="draft", owner_id=alice.id)
    db.add(doc)
    await db.commit()
    await service.create_owner_grant(db, doc)
    checker = AccessChecker(registry, GrantRepository())
    target = f"Document/{doc.id}"

    assert await checker.access_check(db, "read", alice, target) == "read"
    assert await checker.access_check(db, "delete", alice.reference, doc.reference) == "delete"
    assert await checker.access_check(db, "read", bob, target) is None

    result = await db.execute(accessible_query(Document, alice, "read", registry))
    assert [d.id for d in result.scalars().all()] == [doc.id]


@pytest.mark.asyncio
async def test_accessible_query(db, registry, service, members, documents):
    alice, bob, carol = members
    plan, report, memo = documents
    await service.create_owner_grant(db, plan)
    await service.grant_permission(db, "edit", bob, plan)
    await service.grant_permission(db, "read", bob, memo)
    await service.grant_permission(db, "read", bob, memo)
    await service.grant_permission(db, "index", bob, report)

    async def titles(actor, permission):
        result = await db.execute(accessible_query(Document, actor, permission, registry))
        return [d.title for d in result.scalars().all()]

    assert await titles(bob, "read") == ["plan", "memo"]
    assert await titles(bob, "write") == ["plan"]
    assert await titles(bob, "index") == ["report"]
    assert await titles(alice, "delete") == ["plan"]
    assert await titles(carol, "read") == []


# ---------------------------------------------------------------------------
# Cascades
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_destroy_entity_removes_grants_in_one_transaction(db, service, seed, members):
    await seed()
    bob = members[1]
    await service.grant_permission(db, "manage", members[2], bob)

    deleted = await service.destroy_entity(db, bob)

    assert deleted == 3
    assert await db.get(Member, bob.id) is None
    remaining = await service.list_grants(db)
    assert all("Member/2" not in (g.actor_fingerprint, g.target_fingerprint) for g in remaining)
    assert len(remaining) == 3


@pytest.mark.asyncio
async def test_cascade_rolls_back_without_commit(db, service, seed, documents):
    await seed()
    # Rollback expires loaded rows; keep the reference, not the instance.
    plan = documents[0].reference

    async with UnitOfWork(db) as uow:
        assert await service.on_target_destroyed(db, plan, uow=uow) == 3

    assert await service.count_grants(db, {"only_targets": plan}) == 3


@pytest.mark.asyncio
async def test_cascade_for_unknown_reference_deletes_nothing(db, service, seed):
    await seed()
    assert await service.on_actor_destroyed(db, Reference("Member", 99)) == 0
    assert await service.count_grants(db) == 5


@pytest.mark.asyncio
async def test_documents_listed_through_plain_select(db, documents):
    result = await db.execute(select(Document.title).order_by(Document.id))
    assert list(result.scalars().all()) == ["plan", "report", "memo"]
