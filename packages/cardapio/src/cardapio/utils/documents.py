def only_digits(value: str | None) -> str:
    """Remove formatting, keeping only digits."""
    if not value:
        return ""
    return "".join(filter(str.isdigit, value))


def format_cpf(value: str | None) -> str:
    """Format a CPF as XXX.XXX.XXX-XX (partial input is formatted progressively)."""
    digits = only_digits(value)[:11]
    if len(digits) <= 3:
        return digits
    if len(digits) <= 6:
        return f"{digits[:3]}.{digits[3:]}"
    if len(digits) <= 9:
        return f"{digits[:3]}.{digits[3:6]}.{digits[6:]}"
    return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"


def format_phone(value: str | None) -> str:
    """
    Format a Brazilian phone as (XX) XXXXX-XXXX.

    A leading country code 55 is dropped when the number has 12 or 13 digits.
    """
    digits = only_digits(value)
    if len(digits) in (12, 13) and digits.startswith("55"):
        digits = digits[2:]
    digits = digits[:11]

    if len(digits) <= 2:
        return digits

    area, number = digits[:2], digits[2:]
    if len(number) > 4:
        number = f"{number[:-4]}-{number[-4:]}"
    return f"({area}) {number}"
