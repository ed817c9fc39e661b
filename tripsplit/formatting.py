"""
Display formatting helpers.

Currency symbols, money strings, avatar initials and the friendly
reminder text used when a creditor nudges a debtor. None of this takes
part in the balance or settlement math.
"""

from decimal import ROUND_HALF_UP, Decimal
from urllib.parse import quote

from tripsplit.models.expense import Balance


CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "INR": "₹",
    "GBP": "£",
    "JPY": "¥",
    "CAD": "C$",
    "AUD": "A$",
    "CHF": "Fr",
    "CNY": "¥",
    "SEK": "kr",
    "NOK": "kr",
    "DKK": "kr",
}

WHATSAPP_SHARE_URL = "https://wa.me/?text="

_CENTS = Decimal("0.01")


def get_currency_symbol(currency_code: str) -> str:
    """Symbol for a 3-letter code; unknown codes are returned upper-cased."""
    code = (currency_code or "").strip().upper()
    return CURRENCY_SYMBOLS.get(code, code)


def format_amount(amount: Decimal, currency_code: str) -> str:
    """e.g. Decimal("12.5"), "EUR" -> "€12.50"."""
    rounded = Decimal(amount).quantize(_CENTS, rounding=ROUND_HALF_UP)
    return f"{get_currency_symbol(currency_code)}{rounded}"


def get_initials(name: str) -> str:
    return "".join(part[0] for part in name.split()).upper()


def describe_balance(balance: Balance, currency_code: str, epsilon: Decimal) -> str:
    """Badge text for one participant's balance."""
    if balance.is_settled(epsilon):
        return "Settled Up"
    if balance.net > 0:
        return f"Gets Back {format_amount(balance.net, currency_code)}"
    return f"Owes {format_amount(-balance.net, currency_code)}"


def build_reminder_message(debtor: str, amount: Decimal, currency_code: str) -> str:
    return (
        f"Hi {debtor}! 💰\n\n"
        f"Just a friendly reminder that you owe me "
        f"{format_amount(amount, currency_code)} from our recent trip expenses.\n\n"
        f"Could you please settle this when you get a chance? Thanks! 😊"
    )


def build_whatsapp_link(debtor: str, amount: Decimal, currency_code: str) -> str:
    """Share link that pre-fills the reminder in WhatsApp."""
    message = build_reminder_message(debtor, amount, currency_code)
    return WHATSAPP_SHARE_URL + quote(message, safe="")
