from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from invites.manager import InviteCodeManager
from ui.codes import issue_flow, my_codes_flow
from ui.redeem import redeem_flow

console = Console()

MENU_OPTIONS = {
    "1": ("My Codes", "Show the invite codes you can hand out"),
    "2": ("Issue", "Generate a new batch of invite codes"),
    "3": ("Redeem", "Redeem an invite code"),
    "4": ("Exit", "Quit pyInvite"),
}


def show_main_menu(manager: InviteCodeManager, username: str, default_count: int) -> None:
    while True:
        _render_menu(username)
        choice = Prompt.ask("Select an option", choices=list(MENU_OPTIONS.keys()))

        if choice == "1":
            my_codes_flow(manager, username)
        elif choice == "2":
            issue_flow(manager, username, default_count)
        elif choice == "3":
            redeem_flow(manager, username)
        elif choice == "4":
            console.print("\n[cyan]Goodbye![/cyan]\n")
            break


def _render_menu(username: str) -> None:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="cyan bold", width=4)
    table.add_column("Option", style="white")
    table.add_column("Description", style="dim")

    for key, (name, desc) in MENU_OPTIONS.items():
        table.add_row(f"[{key}]", name, desc)

    panel = Panel(
        table,
        title=f"[bold cyan]pyInvite[/bold cyan]  [dim]logged in as: {username}[/dim]",
        border_style="cyan",
        padding=(1, 2),
    )
    console.print(panel)
