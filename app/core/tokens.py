import re
import secrets

ACCESS_TOKEN_LENGTH = 12

_SPECIAL = set("!@#$%^&*()_+-=[]{};:\"\\|,.<>/?")


def generate_access_token() -> str:
    """12-character URL-safe token used to share a planning group."""
    return secrets.token_urlsafe(9)[:ACCESS_TOKEN_LENGTH]


def generate_secure_password() -> str:
    """Random password with 128 bits of entropy, for client accounts created by a coach."""
    password = secrets.token_urlsafe(16)
    while not validate_password_strength(password):
        password = secrets.token_urlsafe(16)
    return password


def validate_password_strength(password: str) -> bool:
    """8-128 characters and at least two of: uppercase, lowercase, digit, special."""
    if not password or len(password) < 8 or len(password) > 128:
        return False
    variety = [
        any(c.isupper() for c in password),
        any(c.islower() for c in password),
        any(c.isdigit() for c in password),
        any(c in _SPECIAL for c in password),
    ]
    return sum(variety) >= 2


CLIENT_IDENTIFIER_RE = re.compile(r"^coach[a-z0-9]{4}_client\d{3,}$")
_SEQUENCE_RE = re.compile(r"client(\d+)$")


def client_identifier_prefix(coach_id: str) -> str:
    return f"coach{coach_id[:4].lower()}_client"


def format_client_identifier(coach_id: str, sequence: int) -> str:
    """coach{first 4 chars of coach id}_client{sequence, zero padded to 3}"""
    return f"{client_identifier_prefix(coach_id)}{sequence:03d}"


def parse_identifier_sequence(identifier: str) -> int:
    match = _SEQUENCE_RE.search(identifier or "")
    return int(match.group(1)) if match else 0


def is_valid_client_identifier(identifier: str) -> bool:
    return bool(CLIENT_IDENTIFIER_RE.match(identifier or ""))


