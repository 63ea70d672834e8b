"""
인증 관련 CLI 명령어

Gmail OAuth 2.0 PKCE 인증 플로우와 토큰 관리를 처리하는 CLI 명령어들입니다.
"""

import asyncio

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from core.domain.exceptions import (
    AuthorizationTimeoutError,
    ConfigurationError,
    InvalidGrantError,
    MailPulseError,
)
from adapters.factory import get_adapter_factory

console = Console()
auth_app = typer.Typer(help="인증 관련 명령어")


@auth_app.command("login")
def login():
    """브라우저로 Gmail 계정을 인증하고 추가합니다."""
    asyncio.run(_login())


@auth_app.command("refresh")
def refresh_token(
    email: str = typer.Option(..., "--email", "-e", help="계정 이메일"),
):
    """계정의 액세스 토큰을 강제로 갱신합니다."""
    asyncio.run(_refresh_token(email))


@auth_app.command("status")
def auth_status():
    """계정별 토큰 상태를 확인합니다."""
    asyncio.run(_auth_status())


def _show_authorization_url(url: str, opened: bool) -> None:
    if opened:
        console.print("[blue]브라우저에서 Google 계정 인증을 진행하세요...[/blue]")
        return

    console.print(Panel.fit(
        f"[yellow]브라우저를 열지 못했습니다.[/yellow]\n\n"
        f"[bold]다음 URL로 이동하여 인증을 완료하세요:[/bold]\n"
        f"[link]{url}[/link]",
        title="🔐 Gmail 인증"
    ))


async def _login():
    """인증 플로우 실행"""
    factory = get_adapter_factory()
    config = factory.get_config()

    if config.is_placeholder():
        console.print(Panel.fit(
            "[bold red]OAuth 클라이언트 설정이 필요합니다[/bold red]\n\n"
            "환경 변수 [cyan]GMAIL_CLIENT_ID[/cyan], [cyan]GMAIL_CLIENT_SECRET[/cyan]을 설정하거나\n"
            f"[cyan]{config.get_data_dir() / 'config.toml'}[/cyan] 파일에 [oauth] 섹션을 추가하세요.",
            title="⚠️ 설정 필요"
        ))
        raise typer.Exit(1)

    usecase = factory.create_authorization_flow_usecase()
    try:
        account = await usecase.authorize(on_authorization_url=_show_authorization_url)
    except AuthorizationTimeoutError as e:
        console.print(f"[red]인증 시간이 초과되었습니다: {str(e)}[/red]")
        raise typer.Exit(1)
    except ConfigurationError as e:
        console.print(f"[red]설정 오류: {str(e)}[/red]")
        raise typer.Exit(1)
    except MailPulseError as e:
        console.print(f"[red]오류 발생: {str(e)}[/red]")
        raise typer.Exit(1)

    console.print(Panel.fit(
        f"[bold green]인증 완료![/bold green]\n\n"
        f"[bold]계정:[/bold] {account.email}\n"
        f"[bold]표시 이름:[/bold] {account.display_name}\n"
        f"[bold]토큰 만료:[/bold] {account.expires_at.astimezone().strftime('%Y-%m-%d %H:%M:%S')}",
        title="✅ 인증 성공"
    ))


async def _refresh_token(email: str):
    """토큰 갱신"""
    factory = get_adapter_factory()
    account_usecase = factory.create_account_management_usecase()

    try:
        account = await account_usecase.get_account(email)
        if not account:
            console.print(f"[red]계정을 찾을 수 없습니다: {email}[/red]")
            raise typer.Exit(1)

        manager = factory.create_token_manager(account)
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console
        ) as progress:
            task = progress.add_task("토큰 갱신 중...", total=None)
            await manager.force_refresh()
            progress.update(task, description="완료!")
    except InvalidGrantError as e:
        console.print(f"[red]{str(e)}[/red]")
        console.print("[yellow]'account remove' 후 'auth login'으로 다시 추가하세요.[/yellow]")
        raise typer.Exit(1)
    except MailPulseError as e:
        console.print(f"[red]토큰 갱신에 실패했습니다: {str(e)}[/red]")
        raise typer.Exit(1)

    if manager.last_persist_error is not None:
        console.print(f"[yellow]갱신된 토큰을 저장하지 못했습니다: {manager.last_persist_error}[/yellow]")

    console.print(Panel.fit(
        f"[bold green]토큰 갱신 완료![/bold green]\n\n"
        f"[bold]계정:[/bold] {email}\n"
        f"[bold]만료 시간:[/bold] {manager.account.expires_at.astimezone().strftime('%Y-%m-%d %H:%M:%S')}",
        title="🔄 토큰 갱신"
    ))


async def _auth_status():
    """토큰 상태 조회"""
    factory = get_adapter_factory()
    config = factory.get_config()
    threshold = config.get_token_refresh_threshold_minutes()

    try:
        accounts = await factory.create_account_management_usecase().list_accounts()
    except MailPulseError as e:
        console.print(f"[red]오류 발생: {str(e)}[/red]")
        raise typer.Exit(1)

    if not accounts:
        console.print("[yellow]등록된 계정이 없습니다.[/yellow]")
        return

    cipher = factory.create_cipher()

    table = Table(title="토큰 상태")
    table.add_column("이메일", style="green")
    table.add_column("만료 시간", style="dim")
    table.add_column("갱신 필요", style="yellow")
    table.add_column("복호화", style="cyan")

    for account in accounts:
        try:
            account.decrypt_refresh_token(cipher)
            decrypt_status = "[green]정상[/green]"
        except MailPulseError as e:
            decrypt_status = f"[red]실패 ({getattr(e, 'stage', 'unknown')})[/red]"

        table.add_row(
            account.email,
            account.expires_at.astimezone().strftime("%Y-%m-%d %H:%M:%S"),
            "예" if account.is_token_expiring(threshold) else "아니오",
            decrypt_status,
        )

    console.print(table)
