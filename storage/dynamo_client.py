import boto3
from botocore.config import Config
from botocore.exceptions import ClientError, NoCredentialsError
from rich.console import Console

console = Console()

_KEY_ATTRIBUTE = "code"


class DynamoClient:
    def __init__(self, config: dict):
        self.table = config["table_name"]
        self.region = config["aws_region"]
        self.client = boto3.client(
            "dynamodb",
            aws_access_key_id=config["aws_access_key"],
            aws_secret_access_key=config["aws_secret_key"],
            region_name=config["aws_region"],
            config=Config(
                connect_timeout=5,
                read_timeout=10,
                retries={"max_attempts": 3, "mode": "standard"},
            ),
        )

    def verify_connection(self) -> bool:
        try:
            self.client.list_tables(Limit=1)
            return True
        except ClientError as e:
            # An AccessDenied error still means credentials are valid
            if e.response["Error"]["Code"] in ("AccessDeniedException", "AccessDenied"):
                return True
            return False
        except NoCredentialsError:
            return False

    def ensure_table_exists(self) -> None:
        try:
            self.client.describe_table(TableName=self.table)
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            if error_code == "ResourceNotFoundException":
                console.print(
                    f"[yellow]Table '[cyan]{self.table}[/cyan]' not found. Creating it...[/yellow]"
                )
                try:
                    self.client.create_table(
                        TableName=self.table,
                        AttributeDefinitions=[
                            {"AttributeName": _KEY_ATTRIBUTE, "AttributeType": "S"}
                        ],
                        KeySchema=[{"AttributeName": _KEY_ATTRIBUTE, "KeyType": "HASH"}],
                        BillingMode="PAY_PER_REQUEST",
                    )
                    self.client.get_waiter("table_exists").wait(TableName=self.table)
                    console.print(
                        f"[green]Table '[cyan]{self.table}[/cyan]' created successfully.[/green]"
                    )
                except ClientError as create_error:
                    console.print(f"[red]Failed to create table: {create_error}[/red]")
                    raise
            else:
                console.print(f"[red]Error accessing table: {e}[/red]")
                raise
