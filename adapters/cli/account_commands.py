"""
계정 관리 CLI 명령어

AccountManagementUseCase를 CLI 명령으로 노출하는 어댑터입니다.
"""

import asyncio

import typer
from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from core.domain.exceptions import MailPulseError
from adapters.factory import get_adapter_factory

# CLI 앱 생성
app = typer.Typer(name="account", help="계정 관리 명령어")
console = Console()


@app.command("list")
def list_accounts(
    active_only: bool = typer.Option(False, "--active-only", help="활성 계정만 조회"),
):
    """등록된 계정 목록을 조회합니다."""

    async def _list():
        usecase = get_adapter_factory().create_account_management_usecase()
        accounts = await usecase.list_accounts(active_only=active_only)

        if not accounts:
            console.print("[yellow]등록된 계정이 없습니다. 'auth login'으로 계정을 추가하세요.[/yellow]")
            return

        # 테이블 생성
        table = Table(title="등록된 계정 목록")
        table.add_column("이메일", style="green")
        table.add_column("표시 이름", style="blue")
        table.add_column("상태", style="yellow")
        table.add_column("토큰 만료", style="dim")

        for account in accounts:
            table.add_row(
                account.email,
                account.display_name or "-",
                "활성" if account.is_active else "비활성",
                account.expires_at.astimezone().strftime("%Y-%m-%d %H:%M"),
            )

        console.print(table)

    try:
        asyncio.run(_list())
    except MailPulseError as e:
        console.print(f"[red]오류: {str(e)}[/red]")
        raise typer.Exit(1)


@app.command("remove")
def remove_account(
    email: str = typer.Argument(..., help="삭제할 계정 이메일"),
    yes: bool = typer.Option(False, "--yes", "-y", help="확인 없이 삭제"),
):
    """계정을 삭제합니다. 저장된 토큰도 함께 삭제됩니다."""
    if not yes and not Confirm.ask(f"'{email}' 계정을 삭제하시겠습니까?"):
        console.print("[yellow]취소되었습니다.[/yellow]")
        return

    async def _remove():
        usecase = get_adapter_factory().create_account_management_usecase()
        return await usecase.remove_account(email)

    try:
        deleted = asyncio.run(_remove())
    except MailPulseError as e:
        console.print(f"[red]오류: {str(e)}[/red]")
        raise typer.Exit(1)

    if not deleted:
        console.print(f"[red]오류: 계정을 찾을 수 없습니다: {email}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓ 계정이 삭제되었습니다: {email}[/green]")


@app.command("activate")
def activate_account(
    email: str = typer.Argument(..., help="활성화할 계정 이메일"),
):
    """계정을 활성화합니다."""
    _set_active(email, True)


@app.command("deactivate")
def deactivate_account(
    email: str = typer.Argument(..., help="비활성화할 계정 이메일"),
):
    """계정을 비활성화합니다. 비활성 계정은 동기화하지 않습니다."""
    _set_active(email, False)


def _set_active(email: str, active: bool) -> None:
    async def _update():
        usecase = get_adapter_factory().create_account_management_usecase()
        return await usecase.set_active(email, active)

    try:
        account = asyncio.run(_update())
    except MailPulseError as e:
        console.print(f"[red]오류: {str(e)}[/red]")
        raise typer.Exit(1)

    if account is None:
        console.print(f"[red]오류: 계정을 찾을 수 없습니다: {email}[/red]")
        raise typer.Exit(1)

    console.print(
        f"[green]✓ 계정이 {'활성화' if active else '비활성화'}되었습니다: {account.email}[/green]"
    )
