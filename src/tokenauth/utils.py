import secrets
import string
import time

ALPHANUMERIC = string.ascii_letters + string.digits


def now_millis() -> int:
    return time.time_ns() // 1_000_000


def random_string(min_length: int, max_length: int) -> str:
    """Random alphanumeric string with a length drawn from [min_length, max_length]."""
    length = min_length + secrets.randbelow(max_length - min_length + 1)
    return "".join(secrets.choice(ALPHANUMERIC) for _ in range(length))
