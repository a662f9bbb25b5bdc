from rich.console import Console
from rich.panel import Panel
from rich.prompt import IntPrompt
from rich.table import Table

from config import load_issued_codes, remember_issued_codes
from invites.errors import InviteCodeError
from invites.manager import InviteCodeManager
from invites.models import SingleUseCode
from ui.prompts import show_invite_error

console = Console()


def issue_flow(manager: InviteCodeManager, username: str, default_count: int) -> None:
    count = IntPrompt.ask("How many codes?", default=default_count)
    if count < 1:
        console.print("[yellow]Nothing to issue.[/yellow]\n")
        return

    try:
        with console.status("[cyan]Generating codes...[/cyan]"):
            codes = manager.issue_codes(username, count)
    except InviteCodeError as e:
        show_invite_error(e)
        return
    except ValueError as e:
        console.print(f"[red]{e}[/red]\n")
        return

    remember_issued_codes(username, [invite.code for invite in codes])
    _render_codes(codes, title="New Invite Codes")
    console.print(f"[dim]{codes[0].share_message}[/dim]\n")


def my_codes_flow(manager: InviteCodeManager, username: str) -> None:
    """Show the user's codes, issuing a first batch when they have none."""
    known = load_issued_codes(username)

    try:
        with console.status("[cyan]Loading your codes...[/cyan]"):
            codes = manager.codes_for_user(username, known)
    except InviteCodeError as e:
        show_invite_error(e)
        return

    if not known:
        remember_issued_codes(username, [invite.code for invite in codes])

    if not codes:
        console.print("[yellow]No invite codes found.[/yellow]\n")
        return

    _render_codes(codes, title="Your Invite Codes")


def _render_codes(codes: list[SingleUseCode], title: str) -> None:
    table = Table(show_header=True, box=None, padding=(0, 2))
    table.add_column("Code", style="bold cyan")
    table.add_column("Status")
    table.add_column("Created", style="dim")

    for invite in codes:
        status = (
            f"[red]used[/red] [dim]by {invite.used_by_user_id}[/dim]"
            if invite.used
            else "[green]available[/green]"
        )
        created = invite.creation_date.strftime("%Y-%m-%d %H:%M") if invite.creation_date else "-"
        table.add_row(invite.code, status, created)

    console.print(
        Panel(
            table,
            title=f"[bold cyan]{title}[/bold cyan]",
            border_style="green",
            padding=(1, 2),
        )
    )
