import json
from pathlib import Path
from rich.console import Console
from rich.prompt import Prompt

CONFIG_DIR = Path.home() / ".pyinvite"
CONFIG_FILE = CONFIG_DIR / "config.json"
ISSUED_CODES_FILE = CONFIG_DIR / "issued_codes.json"

_REQUIRED_KEYS = {"aws_access_key", "aws_secret_key", "aws_region", "table_name"}

DEFAULTS = {
    "batch_size": 5,
    "max_batch_attempts": 10,
}

MAX_BATCH_SIZE = 100

console = Console()


def load_config() -> dict | None:
    if not CONFIG_FILE.exists():
        return None
    try:
        with open(CONFIG_FILE) as f:
            return {**DEFAULTS, **json.load(f)}
    except (json.JSONDecodeError, TypeError):
        return None


def validate_config(config: dict) -> bool:
    """Return True if config has all required keys with non-empty values."""
    if not isinstance(config, dict):
        return False
    if not all(str(config.get(key, "")).strip() for key in _REQUIRED_KEYS):
        return False
    for key in DEFAULTS:
        value = config.get(key, DEFAULTS[key])
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            return False
    # A batch is saved in one DynamoDB transaction
    return config.get("batch_size", DEFAULTS["batch_size"]) <= MAX_BATCH_SIZE


def save_config(config: dict) -> None:
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    with open(CONFIG_FILE, "w") as f:
        json.dump(config, f, indent=2)


def load_issued_codes(username: str) -> list[str]:
    """Codes previously issued to this user on this machine."""
    if not ISSUED_CODES_FILE.exists():
        return []
    try:
        with open(ISSUED_CODES_FILE) as f:
            return list(json.load(f).get(username, []))
    except (json.JSONDecodeError, AttributeError):
        return []


def remember_issued_codes(username: str, codes: list[str]) -> None:
    data: dict = {}
    if ISSUED_CODES_FILE.exists():
        try:
            with open(ISSUED_CODES_FILE) as f:
                data = json.load(f)
        except json.JSONDecodeError:
            data = {}
    known = data.get(username, [])
    data[username] = known + [code for code in codes if code not in known]

    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    with open(ISSUED_CODES_FILE, "w") as f:
        json.dump(data, f, indent=2)


def run_setup_wizard() -> dict:
    console.print("[bold]AWS Configuration Setup[/bold]\n")
    console.print(
        "You'll need an AWS account with an IAM user that has DynamoDB permissions.\n"
        "The invite code table is created on first run if it doesn't exist.\n"
    )

    access_key = Prompt.ask("[cyan]AWS Access Key ID[/cyan]").strip()
    secret_key = Prompt.ask("[cyan]AWS Secret Access Key[/cyan]", password=True)
    region = Prompt.ask("[cyan]AWS Region[/cyan]", default="us-east-1")
    table = Prompt.ask("[cyan]DynamoDB Table Name[/cyan]", default="invite-codes")

    return {
        "aws_access_key": access_key,
        "aws_secret_key": secret_key,
        "aws_region": region,
        "table_name": table,
        **DEFAULTS,
    }
