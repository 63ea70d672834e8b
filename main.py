"""
Gmail Pulse

Gmail 계정의 읽지 않은 메일 수를 주기적으로 확인하는 도구의 메인 진입점 파일입니다.
"""

import typer
from rich.console import Console

from adapters.cli.account_commands import app as account_app
from adapters.cli.auth_commands import auth_app
from adapters.cli.sync_commands import app as sync_app
from adapters.factory import get_adapter_factory
from config.adapters import get_config
from core.domain.entities import mask_secret
from core.domain.exceptions import MailPulseError

__version__ = "1.0.0"

# 메인 CLI 앱
app = typer.Typer(
    name="gmail-pulse",
    help="Gmail 읽지 않은 메일 알림 도구",
    no_args_is_help=True,
)

# 서브 명령어 추가
app.add_typer(auth_app, name="auth")
app.add_typer(account_app, name="account")
app.add_typer(sync_app, name="sync")

console = Console()


@app.command("version")
def show_version():
    """버전 정보를 표시합니다."""
    console.print("[bold]Gmail Pulse[/bold]")
    console.print(f"버전: {__version__}")


@app.command("config")
def show_config(
    check_key: bool = typer.Option(False, "--check-key", help="기기 바인딩 암호화 키 동작 확인"),
):
    """현재 설정을 표시합니다."""
    try:
        config = get_config()
        oauth_config = config.get_oauth_client_config()
        network_config = config.get_network_check_config()

        console.print("[bold]현재 설정[/bold]")
        console.print(f"환경: {config.get_environment()}")
        console.print(f"디버그 모드: {config.is_debug()}")
        console.print(f"데이터 디렉터리: {config.get_data_dir()}")
        console.print(f"계정 파일: {config.get_accounts_file()}")
        console.print(f"OAuth 클라이언트 ID: {mask_secret(oauth_config.client_id, 12)}")
        console.print(f"OAuth 리다이렉트: {oauth_config.redirect_base_uri}:{oauth_config.port_start}-{oauth_config.port_end}")
        console.print(f"OAuth 권한 범위: {', '.join(oauth_config.scopes)}")
        console.print(f"동기화 간격(초): {config.get_sync_interval_seconds():g}")
        console.print(f"네트워크 검사: {network_config['url']} (최대 {network_config['max_attempts']}회)")
        console.print(f"로그 레벨: {config.get_log_level()}")

        if config.is_placeholder():
            console.print("[yellow]OAuth 클라이언트 자격 증명이 설정되지 않았습니다 (플레이스홀더)[/yellow]")

        if check_key:
            cipher = get_adapter_factory().create_cipher()
            if cipher.verify_key():
                console.print("[green]✓ 암호화 키 확인 완료[/green]")
            else:
                console.print("[red]암호화 키 확인 실패[/red]")
                raise typer.Exit(1)

    except MailPulseError as e:
        console.print(f"[red]오류: {str(e)}[/red]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
