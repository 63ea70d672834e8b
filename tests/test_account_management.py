"""
계정 관리 유즈케이스 테스트
"""

import pytest

from core.usecases.account_management import AccountManagementUseCase


@pytest.fixture
def seeded(make_account, make_repository):
    return make_repository([
        make_account(email="alice@example.com"),
        make_account(email="bob@example.com", display_name="Bob", is_active=False),
    ])


@pytest.fixture
def usecase(seeded, logger):
    return AccountManagementUseCase(account_repository=seeded, logger=logger)


@pytest.mark.asyncio
async def test_list_accounts_in_storage_order(usecase):
    accounts = await usecase.list_accounts()

    assert [account.email for account in accounts] == ["alice@example.com", "bob@example.com"]


@pytest.mark.asyncio
async def test_list_active_only(usecase):
    accounts = await usecase.list_accounts(active_only=True)

    assert [account.email for account in accounts] == ["alice@example.com"]


@pytest.mark.asyncio
async def test_get_account_normalizes_email(usecase):
    account = await usecase.get_account("  Alice@Example.COM ")

    assert account is not None
    assert account.email == "alice@example.com"


@pytest.mark.asyncio
async def test_get_missing_account(usecase):
    assert await usecase.get_account("nobody@example.com") is None


@pytest.mark.asyncio
async def test_remove_account(usecase, seeded):
    assert await usecase.remove_account("Bob@example.com") is True
    assert [account.email for account in seeded.accounts] == ["alice@example.com"]


@pytest.mark.asyncio
async def test_remove_missing_account(usecase, logger):
    assert await usecase.remove_account("nobody@example.com") is False
    assert any("존재하지 않는 계정" in message for message in logger.messages("warning"))


@pytest.mark.asyncio
async def test_activate_and_deactivate(usecase, seeded):
    activated = await usecase.activate_account("bob@example.com")
    assert activated.is_active
    assert seeded.accounts[1].is_active

    deactivated = await usecase.deactivate_account("alice@example.com")
    assert not deactivated.is_active
    assert not seeded.accounts[0].is_active


@pytest.mark.asyncio
async def test_unchanged_state_is_not_saved(usecase, seeded):
    account = await usecase.activate_account("alice@example.com")

    assert account.is_active
    assert seeded.save_calls == 0


@pytest.mark.asyncio
async def test_set_active_on_missing_account(usecase):
    assert await usecase.set_active("nobody@example.com", True) is None
