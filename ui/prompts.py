from rich.console import Console
from rich.prompt import Prompt

from invites.errors import InviteCodeError

console = Console()


def prompt_username() -> str:
    username = Prompt.ask("[cyan]Enter your user ID[/cyan]").strip()
    while not username:
        console.print("[red]User ID cannot be empty.[/red]")
        username = Prompt.ask("[cyan]Enter your user ID[/cyan]").strip()
    return username


def show_invite_error(error: InviteCodeError) -> None:
    console.print(f"[red]{error.title}[/red]")
    if error.blurb and error.blurb != error.title:
        console.print(f"[dim]{error.blurb}[/dim]")
    console.print()
