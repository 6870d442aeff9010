"""Phone number normalisation."""

import re

NON_DIGITS = re.compile(r"\D")


class InvalidNumberError(ValueError):
    """Raised when a phone number is not a 10-digit national number, optionally
    prefixed with the trunk prefix 8 or the country code 7."""

    pass


def split_number(raw: str) -> tuple[int, int]:
    """
    Split a phone number into its numbering-plan code and subscriber number.

    Args:
        raw: Phone number in any common notation, e.g. "+7 (916) 123-45-67"

    Returns:
        Tuple of (code, subscriber number), e.g. (916, 1234567)

    Raises:
        InvalidNumberError: If the number cannot be read as a national number
    """
    digits = NON_DIGITS.sub("", raw)
    if len(digits) == 11 and digits[0] in "78":
        digits = digits[1:]
    if len(digits) != 10:
        raise InvalidNumberError(f"Not a valid phone number: {raw!r}")
    return int(digits[:3]), int(digits[3:])
