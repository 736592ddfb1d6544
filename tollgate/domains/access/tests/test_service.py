"""Unit tests for AccessService.

Uses fakes for all dependencies: no database.
"""

from unittest.mock import AsyncMock

import pytest

from tollgate.core.config import Settings
from tollgate.domains.access.exceptions import ReferenceResolutionError, UnknownPermissionError
from tollgate.domains.access.fakes.repository import FakeGrantRepository
from tollgate.domains.access.permissions import Delete
from tollgate.domains.access.references import Reference
from tollgate.domains.access.tests.conftest import ALICE, BOB, CAROL, Document, build_service

DOC = Document(10, owner=ALICE)


# ---------------------------------------------------------------------------
# grant_permission / revoke_permission
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_grant_permission_creates_grant_with_mask(db):
    repo = FakeGrantRepository()
    service = build_service(repo=repo)

    grant = await service.grant_permission(db, "edit", BOB, DOC)

    assert grant.permission == "edit"
    assert grant.permission_mask == 0x0C
    assert grant.actor_fingerprint == "User/2"
    assert grant.target_fingerprint == "Document/10"
    assert await service.access_check(db, "write", BOB, DOC) == "edit"


@pytest.mark.asyncio
async def test_grant_permission_reuses_existing_grant(db):
    repo = FakeGrantRepository()
    service = build_service(repo=repo)

    first = await service.grant_permission(db, "read", BOB, DOC)
    second = await service.grant_permission(db, "read", BOB, DOC)

    assert first is second
    assert len(repo.grants) == 1
    assert [c[0] for c in repo._calls] == ["find", "create", "find"]


@pytest.mark.asyncio
async def test_grant_permission_rejects_unknown_permission(db):
    service = build_service()
    with pytest.raises(UnknownPermissionError):
        await service.grant_permission(db, "publish", BOB, DOC)


@pytest.mark.asyncio
async def test_grant_permission_rejects_bad_references(db):
    service = build_service()
    with pytest.raises(ReferenceResolutionError):
        await service.grant_permission(db, "read", "nobody", DOC)


@pytest.mark.asyncio
async def test_revoke_permission_removes_only_that_permission(db):
    repo = FakeGrantRepository()
    repo.seed(DOC.reference, BOB.reference, "read")
    repo.seed(DOC.reference, BOB.reference, "read")
    repo.seed(DOC.reference, BOB.reference, "manage")
    repo.seed(DOC.reference, CAROL.reference, "read")
    service = build_service(repo=repo)

    assert await service.revoke_permission(db, "read", BOB, DOC) == 2
    assert [(g.actor_fingerprint, g.permission) for g in repo.grants] == [
        ("User/2", "manage"),
        ("User/3", "read"),
    ]
    assert await service.access_check(db, "read", BOB, DOC) == "manage"


@pytest.mark.asyncio
async def test_revoke_missing_permission_is_noop(db):
    service = build_service()
    assert await service.revoke_permission(db, "read", BOB, DOC) == 0


@pytest.mark.asyncio
async def test_find_grant_and_grants_for(db):
    repo = FakeGrantRepository()
    edit = repo.seed(DOC.reference, BOB.reference, "edit")
    index = repo.seed(DOC.reference, BOB.reference, "index")
    service = build_service(repo=repo)

    assert await service.find_grant(db, "edit", BOB, DOC) is edit
    assert await service.find_grant(db, "read", BOB, DOC) is None
    assert await service.grants_for(db, BOB, DOC) == [edit, index]


@pytest.mark.asyncio
async def test_list_and_count_grants(db):
    repo = FakeGrantRepository()
    repo.seed(DOC.reference, ALICE.reference, "owner")
    repo.seed(DOC.reference, BOB.reference, "read")
    repo.seed(Reference("Document", 11), CAROL.reference, "edit")
    service = build_service(repo=repo)

    grants = await service.list_grants(db, {"only_targets": DOC, "except_actors": [ALICE]})
    assert [g.actor_fingerprint for g in grants] == ["User/2"]
    assert await service.count_grants(db, {"permissions": ["read", "edit"]}) == 2
    assert await service.count_grants(db, {"only_actors": None, "except_actors": None}) == 0
    assert await service.count_grants(db) == 3


@pytest.mark.asyncio
async def test_list_grants_by_permission_mask(db):
    repo = FakeGrantRepository()
    service = build_service(repo=repo)
    await service.grant_permission(db, "owner", ALICE, DOC)
    await service.grant_permission(db, "read", BOB, DOC)
    await service.grant_permission(db, "edit", CAROL, DOC)
    await service.grant_permission(db, "manage", BOB, "Document/11")

    writers = await service.list_grants(db, {"permissions_all": "write"})
    assert [g.permission for g in writers] == ["edit", "manage"]
    assert await service.count_grants(db, {"permissions_all": ["read", Delete]}) == 1
    assert await service.count_grants(db, {"permissions_any": ["delete", "owner"]}) == 2
    assert await service.count_grants(db, {"permissions_any": 0x04}) == 3
    assert await service.count_grants(db, {"permissions": None}) == 4

    listed = [c for c in repo._calls if c[0] == "list"]
    assert listed[-1][2] == {"permissions_all": 0x08}


@pytest.mark.asyncio
async def test_mask_option_with_unknown_permission_raises(db):
    service = build_service()
    with pytest.raises(UnknownPermissionError):
        await service.list_grants(db, {"permissions_any": ["read", "publish"]})


# ---------------------------------------------------------------------------
# Owner grants
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_owner_grant(db):
    repo = FakeGrantRepository()
    service = build_service(repo=repo)

    grant = await service.create_owner_grant(db, DOC)

    assert grant is not None
    assert (grant.actor_fingerprint, grant.permission, grant.permission_mask) == (
        "User/1",
        "owner",
        0x01,
    )


@pytest.mark.asyncio
async def test_create_owner_grant_skipped_without_owner(db):
    repo = FakeGrantRepository()
    service = build_service(repo=repo)

    assert await service.create_owner_grant(db, Document(11)) is None
    assert await service.create_owner_grant(db, "Document/11") is None
    assert repo.grants == []


@pytest.mark.asyncio
async def test_create_owner_grant_disabled_by_settings(db):
    repo = FakeGrantRepository()
    service = build_service(repo=repo, settings=Settings(CREATE_OWNER_GRANTS=False))

    assert await service.create_owner_grant(db, DOC) is None
    assert repo._calls == []


# ---------------------------------------------------------------------------
# Cascades
# ---------------------------------------------------------------------------


def _seeded_repo() -> FakeGrantRepository:
    repo = FakeGrantRepository()
    repo.seed(DOC.reference, ALICE.reference, "owner")
    repo.seed(DOC.reference, BOB.reference, "edit")
    repo.seed(Reference("Document", 11), BOB.reference, "read")
    repo.seed(BOB.reference, CAROL.reference, "manage")
    return repo


@pytest.mark.asyncio
async def test_on_target_destroyed(db):
    repo = _seeded_repo()
    service = build_service(repo=repo)

    assert await service.on_target_destroyed(db, DOC) == 2
    assert all(g.target_fingerprint != "Document/10" for g in repo.grants)
    for actor in (ALICE, BOB):
        assert await service.grants_for(db, actor, DOC) == []


@pytest.mark.asyncio
async def test_on_actor_destroyed(db):
    repo = _seeded_repo()
    service = build_service(repo=repo)

    assert await service.on_actor_destroyed(db, BOB) == 2
    assert [g.actor_fingerprint for g in repo.grants] == ["User/1", "User/3"]


@pytest.mark.asyncio
async def test_destroy_entity_removes_grants_before_entity():
    repo = _seeded_repo()
    service = build_service(repo=repo)
    order: list[str] = []

    db = AsyncMock()
    db.delete.side_effect = lambda entity: order.append(f"delete {entity.reference}")
    db.commit.side_effect = lambda: order.append("commit")

    count = await service.destroy_entity(db, BOB)

    assert count == 3
    assert all("User/2" not in (g.actor_fingerprint, g.target_fingerprint) for g in repo.grants)
    uow_calls = [c for c in repo._calls if c[0].startswith("destroy_for_")]
    assert [c[0] for c in uow_calls] == ["destroy_for_target", "destroy_for_actor"]
    assert all(c[-1] is not None for c in uow_calls)
    assert order == ["delete User/2", "commit"]
    db.rollback.assert_not_awaited()
