"""
동기화 CLI 명령어

즉시 동기화와 주기 동기화(watch)를 제공합니다.
"""

import asyncio
import signal

import typer
from rich.console import Console
from rich.table import Table

from core.domain.entities import AccountSyncResult, SyncCycleReport
from core.domain.exceptions import MailPulseError
from core.domain.ports import SyncEventSinkPort
from adapters.factory import get_adapter_factory

app = typer.Typer(name="sync", help="메일 동기화 명령어")
console = Console()


class ConsoleSyncEventSink(SyncEventSinkPort):
    """동기화 이벤트를 콘솔에 출력하는 싱크"""

    def on_account_result(self, result: AccountSyncResult) -> None:
        if not result.is_success:
            console.print(f"[red]✗ {result.email}: {result.error}[/red]")
        elif result.error_message:
            console.print(
                f"[yellow]! {result.email}: 읽지 않음 {result.info.unread_count} ({result.error_message})[/yellow]"
            )
        else:
            console.print(
                f"[green]✓ {result.info.display_name or result.email}: 읽지 않음 {result.info.unread_count}[/green]"
            )

        if result.requires_reauthorization:
            console.print(f"[yellow]  → '{result.email}' 계정을 다시 인증하세요[/yellow]")

    def on_network_unavailable(self, report: SyncCycleReport) -> None:
        console.print(
            f"[red]네트워크에 연결할 수 없어 이번 동기화를 건너뜁니다 "
            f"({len(report.skipped_accounts)}개 계정)[/red]"
        )


def _render_report(report: SyncCycleReport) -> None:
    if not report.results and not report.skipped_accounts:
        console.print("[yellow]동기화할 활성 계정이 없습니다.[/yellow]")
        return

    table = Table(title="동기화 결과")
    table.add_column("이메일", style="green")
    table.add_column("표시 이름", style="blue")
    table.add_column("읽지 않음", justify="right", style="cyan")
    table.add_column("상태", style="yellow")

    for result in report.results:
        if result.info is not None:
            status = "[yellow]재인증 필요[/yellow]" if result.requires_reauthorization else "정상"
            if result.info.error_message and not result.requires_reauthorization:
                status = f"[yellow]{result.info.error_message}[/yellow]"
            table.add_row(
                result.email,
                result.info.display_name or "-",
                str(result.info.unread_count),
                status,
            )
        else:
            status = "[red]재인증 필요[/red]" if result.requires_reauthorization else f"[red]{result.error}[/red]"
            table.add_row(result.email, "-", "-", status)

    for email in report.skipped_accounts:
        table.add_row(email, "-", "-", "[dim]건너뜀 (네트워크)[/dim]")

    console.print(table)
    if report.network_issue:
        console.print("[yellow]동기화 중 네트워크 문제가 감지되었습니다.[/yellow]")


@app.command("now")
def sync_now():
    """모든 활성 계정을 즉시 동기화합니다."""

    async def _sync():
        engine = get_adapter_factory().create_sync_engine()
        return await engine.sync_now()

    try:
        report = asyncio.run(_sync())
    except MailPulseError as e:
        console.print(f"[red]오류: {str(e)}[/red]")
        raise typer.Exit(1)

    _render_report(report)


@app.command("watch")
def sync_watch():
    """주기적으로 동기화하며 결과를 출력합니다. Ctrl-C로 종료합니다."""

    async def _watch():
        factory = get_adapter_factory()
        config = factory.get_config()
        engine = factory.create_sync_engine()

        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, engine.request_stop)
            loop.add_signal_handler(signal.SIGTERM, engine.request_stop)
        except NotImplementedError:
            # Windows 이벤트 루프는 시그널 핸들러를 지원하지 않음
            pass

        console.print(
            f"[blue]동기화 시작 (간격 {config.get_sync_interval_seconds():g}초). Ctrl-C로 종료합니다.[/blue]"
        )
        await engine.start(ConsoleSyncEventSink())

    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        pass

    console.print("[green]✓ 동기화를 종료했습니다.[/green]")
