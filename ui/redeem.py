from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt

from invites.errors import InviteCodeError
from invites.manager import InviteCodeManager
from ui.prompts import show_invite_error

console = Console()


def redeem_flow(manager: InviteCodeManager, username: str) -> None:
    code = Prompt.ask("[cyan]Enter invite code[/cyan]").strip().upper()

    try:
        with console.status("[cyan]Checking code...[/cyan]"):
            invite = manager.redeem(code, username)
    except InviteCodeError as e:
        show_invite_error(e)
        return

    console.print(
        Panel(
            f"[bold green]Welcome in![/bold green] Code [cyan]{invite.code}[/cyan] redeemed.",
            border_style="green",
            padding=(1, 4),
        )
    )
    console.print()
