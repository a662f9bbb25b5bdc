import secrets
import string

CODE_CHARS = string.ascii_uppercase + string.digits
CODE_LENGTH = 6


def generate_code() -> str:
    """Build a random 6-char code from A-Z and 0-9."""
    return "".join(secrets.choice(CODE_CHARS) for _ in range(CODE_LENGTH))


def normalize_code(code: str) -> str:
    return code.strip().upper()
