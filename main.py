import logging
import os
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt

from config import load_config, run_setup_wizard, save_config, validate_config
from invites.manager import InviteCodeManager
from storage.dynamo_client import DynamoClient
from storage.dynamo_record_store import DynamoRecordStore
from ui.menu import show_main_menu
from ui.prompts import prompt_username

console = Console()


def configure_logging() -> None:
    level = os.environ.get("PYINVITE_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def main() -> None:
    configure_logging()
    console.print(
        Panel.fit(
            "[bold cyan]pyInvite[/bold cyan]\n[dim]Invite Codes[/dim]",
            border_style="cyan",
            padding=(1, 4),
        )
    )

    # Load config, run setup wizard on first launch or if config is invalid
    config = load_config()
    if config is None:
        console.print(
            "[yellow]No configuration found. Running first-time setup...[/yellow]\n"
        )
        config = run_setup_wizard()
        save_config(config)
        console.print("\n[green]Configuration saved to ~/.pyinvite/config.json[/green]\n")
    elif not validate_config(config):
        console.print(
            "[yellow]Saved configuration is incomplete or corrupted. Re-running setup...[/yellow]\n"
        )
        config = run_setup_wizard()
        save_config(config)
        console.print("\n[green]Configuration updated.[/green]\n")

    username = prompt_username()
    console.print()

    console.print("[dim]Connecting to DynamoDB...[/dim]")
    client = DynamoClient(config)

    if not client.verify_connection():
        console.print(
            "[red]Failed to connect to AWS. Please check your credentials.[/red]"
        )
        reconfigure = Prompt.ask("Reconfigure credentials?", choices=["y", "n"], default="y")
        if reconfigure == "y":
            config = run_setup_wizard()
            save_config(config)
            client = DynamoClient(config)
            if not client.verify_connection():
                console.print("[red]Still unable to connect. Exiting.[/red]")
                sys.exit(1)
        else:
            sys.exit(1)

    client.ensure_table_exists()
    console.print(
        f"[green]Connected.[/green] Table: [cyan]{config['table_name']}[/cyan]\n"
    )

    manager = InviteCodeManager(
        DynamoRecordStore(client),
        default_batch_size=config["batch_size"],
        max_batch_attempts=config["max_batch_attempts"],
    )
    show_main_menu(manager, username, config["batch_size"])


if __name__ == "__main__":
    main()
