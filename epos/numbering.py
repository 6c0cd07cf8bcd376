import secrets
import string
import time

BASE36 = string.digits + string.ascii_uppercase


def _base36(number):
    digits = ''
    while number:
        number, remainder = divmod(number, 36)
        digits = BASE36[remainder] + digits
    return digits or '0'


def generate_reference(prefix):
    """Human facing numbers like QR-LZ3K9Q1A-7H2M0XQ: millisecond clock plus a random suffix."""
    timestamp = _base36(int(time.time() * 1000))
    random_part = ''.join(secrets.choice(BASE36) for _ in range(7))
    return f"{prefix}-{timestamp}-{random_part}"
