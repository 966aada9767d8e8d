# tests/unit/application/use_cases/test_init_rulebook_for_tenant.py
from __future__ import annotations

from datetime import date

import pytest

from rulebook_engine.application.schemas.dto.rulebook import InitRulebookRequestDTO
from rulebook_engine.application.use_cases.rulebook.init_rulebook_for_tenant import (
    InitRulebookForTenantUseCase,
)
from rulebook_engine.domain.exceptions.rulebook import RulebookInitError
from rulebook_engine.domain.services.default_rules import (
    DEFAULT_RULEBOOK_RULES,
    DEFAULT_RULEBOOK_VERSION,
)

from rulebook_fakes import TENANT_ID, FakeWorld


def _active_codes(world: FakeWorld) -> list[str]:
    return [v.code for v in world.rulebook.versions.values() if v.is_active]


async def test_seeds_default_catalog_into_new_version(world: FakeWorld) -> None:
    use_case = InitRulebookForTenantUseCase(uow=world.uow())

    summary = await use_case.execute(
        InitRulebookRequestDTO(tenant_id=TENANT_ID, actor_profile_id="admin-1")
    )

    assert summary.created_version is True
    assert summary.activated_version is True
    assert summary.version_code == DEFAULT_RULEBOOK_VERSION.code
    assert summary.upserted_rules == len(DEFAULT_RULEBOOK_RULES)
    version = world.rulebook.versions[summary.version_id]
    assert version.effective_from == DEFAULT_RULEBOOK_VERSION.effective_from
    assert len(world.rulebook.rules) == len(DEFAULT_RULEBOOK_RULES)
    assert _active_codes(world) == [DEFAULT_RULEBOOK_VERSION.code]
    assert world.uows[0].commits == 1


async def test_rerun_reuses_version_and_keeps_rule_count(world: FakeWorld) -> None:
    req = InitRulebookRequestDTO(tenant_id=TENANT_ID)
    first = await InitRulebookForTenantUseCase(uow=world.uow()).execute(req)
    second = await InitRulebookForTenantUseCase(uow=world.uow()).execute(req)

    assert second.created_version is False
    assert second.version_id == first.version_id
    assert len(world.rulebook.versions) == 1
    assert len(world.rulebook.rules) == len(DEFAULT_RULEBOOK_RULES)
    assert world.rulebook.deleted_versions == []


async def test_replace_rules_deletes_before_upsert(world: FakeWorld) -> None:
    first = await InitRulebookForTenantUseCase(uow=world.uow()).execute(
        InitRulebookRequestDTO(tenant_id=TENANT_ID)
    )

    await InitRulebookForTenantUseCase(uow=world.uow(), rules=DEFAULT_RULEBOOK_RULES[:3]).execute(
        InitRulebookRequestDTO(tenant_id=TENANT_ID, replace_rules=True)
    )

    assert world.rulebook.deleted_versions == [first.version_id]
    assert len(world.rulebook.rules) == 3


async def test_new_active_version_deactivates_previous(world: FakeWorld) -> None:
    await InitRulebookForTenantUseCase(uow=world.uow()).execute(
        InitRulebookRequestDTO(tenant_id=TENANT_ID)
    )

    summary = await InitRulebookForTenantUseCase(uow=world.uow()).execute(
        InitRulebookRequestDTO(
            tenant_id=TENANT_ID,
            version_code="ua-core-2027",
            version_name="Core 2027",
            effective_from=date(2027, 1, 1),
        )
    )

    assert summary.created_version is True
    assert _active_codes(world) == ["ua-core-2027"]
    assert world.rulebook.versions[summary.version_id].name == "Core 2027"


async def test_inactive_seed_leaves_active_version_alone(world: FakeWorld) -> None:
    world.add_active_version(code="legacy")

    summary = await InitRulebookForTenantUseCase(uow=world.uow()).execute(
        InitRulebookRequestDTO(tenant_id=TENANT_ID, activate_version=False)
    )

    assert summary.activated_version is False
    assert _active_codes(world) == ["legacy"]


async def test_failure_is_wrapped_and_rolled_back(world: FakeWorld) -> None:
    world.rulebook.fail_on.add("upsert_rules")
    use_case = InitRulebookForTenantUseCase(uow=world.uow())

    with pytest.raises(RulebookInitError) as exc_info:
        await use_case.execute(InitRulebookRequestDTO(tenant_id=TENANT_ID))

    assert exc_info.value.details == {"tenant_id": TENANT_ID, "error": "upsert_rules failed"}
    assert world.uows[0].rollbacks >= 1
    assert world.uows[0].commits == 0
