"""
Enrollment Helpers

Name handling and credential generation used by the provisioning workflow.
"""

import secrets
import string

# Name suffixes recognised when splitting a single full-name string
NAME_EXTENSIONS = ("Jr.", "Sr.", "II", "III", "IV", "V")

# Grades offered for enrollment
GRADE_LEVELS = (
    "Kindergarten",
    "Grade 1",
    "Grade 2",
    "Grade 3",
    "Grade 4",
    "Grade 5",
    "Grade 6",
)

LRN_LENGTH = 12
TEMP_PASSWORD_LENGTH = 12
_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def normalize_extension(value: str | None) -> str | None:
    """Match a suffix case-insensitively to its canonical spelling."""
    if not value or not value.strip():
        return None
    candidate = value.strip().rstrip(".").lower()
    for extension in NAME_EXTENSIONS:
        if extension.rstrip(".").lower() == candidate:
            return extension
    return None


def assemble_full_name(
    first_name: str,
    middle_name: str | None,
    last_name: str,
    extension: str | None = None,
) -> str:
    """'Juan Santos Dela Cruz Jr.' style display name."""
    parts = [first_name, middle_name, last_name, extension]
    return " ".join(p.strip() for p in parts if p and p.strip())


def split_full_name(full_name: str) -> dict[str, str | None]:
    """
    Split a free-text name into parts.

    A trailing recognised suffix becomes the extension, the last remaining
    token is the last name and everything before it the first name.
    Middle names cannot be told apart from compound first names, so
    ``middle_name`` is always None.
    """
    tokens = full_name.split()
    extension = None
    if len(tokens) > 1 and normalize_extension(tokens[-1]):
        extension = normalize_extension(tokens.pop())

    if not tokens:
        return {"first_name": "", "middle_name": None, "last_name": "", "extension": extension}
    if len(tokens) == 1:
        return {"first_name": tokens[0], "middle_name": None, "last_name": "", "extension": extension}

    return {
        "first_name": " ".join(tokens[:-1]),
        "middle_name": None,
        "last_name": tokens[-1],
        "extension": extension,
    }


def generate_lrn() -> str:
    """
    Random 12-digit learner reference number with a non-zero first digit.

    Not unique by construction; the users.lrn unique index rejects the rare
    collision and the approval is retried by staff.
    """
    first = secrets.choice("123456789")
    rest = "".join(secrets.choice(string.digits) for _ in range(LRN_LENGTH - 1))
    return first + rest


def generate_temp_password(length: int = TEMP_PASSWORD_LENGTH) -> str:
    """Random alphanumeric password containing at least one digit and one letter."""
    while True:
        password = "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))
        if any(c.isdigit() for c in password) and any(c.isalpha() for c in password):
            return password
