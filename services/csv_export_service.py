"""
CSV export service for the transaction list.

Renders the result of a transaction search (sale + vehicle + customer) as a
CSV document, one row per sale record.

Security:
- CSV Injection Prevention: Sanitizes all free-text fields to prevent formula execution
- Security Logging: Logs when dangerous characters are stripped
"""

from __future__ import annotations

import csv
import logging
from datetime import timezone, tzinfo
from decimal import Decimal
from io import StringIO
from typing import Iterable, Mapping, Optional

from domain.user import User
from services.transaction_query import TransactionView

logger = logging.getLogger(__name__)

HEADER = [
    "Order ID",
    "Status",
    "Vehicle",
    "VIN",
    "Customer Name",
    "Customer Phone",
    "Agreed Price",
    "Deposit",
    "Final Price",
    "Transaction Date",
    "Handled By",
]


def sanitize_csv_field(value: str | None, field_name: str = "unknown") -> str:
    """
    Sanitize field to prevent CSV injection attacks with security logging.

    Strips leading characters that can trigger formula execution in Excel/Sheets:
    =, +, -, @, tab, carriage return

    Example:
        sanitize_csv_field("=HYPERLINK(...)", "customer_name")
        # Returns "HYPERLINK(...)" and logs warning about stripped "=" character
    """
    if value is None or value == "":
        return ""

    text = str(value).strip()
    original_text = text
    dangerous_chars = {'=', '+', '-', '@', '\t', '\r'}

    stripped_chars = []
    while text and text[0] in dangerous_chars:
        stripped_chars.append(text[0])
        text = text[1:]

    if stripped_chars:
        logger.warning(
            f"CSV injection character(s) stripped from field '{field_name}'",
            extra={
                "field_name": field_name,
                "stripped_characters": "".join(stripped_chars),
                "original_value": original_text[:100],
                "sanitized_value": text[:100],
                "modification_type": "csv_injection_prevention"
            }
        )

    return text


def _money(value: Optional[Decimal]) -> str:
    return "" if value is None else str(value)


def generate_transactions_csv(
    views: Iterable[TransactionView],
    users: Optional[Mapping[str, User]] = None,
    tz: Optional[tzinfo] = None,
) -> str:
    """
    Generate CSV content for a list of transactions.

    Args:
        views: Search results, written in the given order
        users: user_id -> User, used to print the handler's display name
        tz: Time zone for the Transaction Date column (default UTC)

    Returns:
        CSV content as a string

    Example:
        views = search_transactions(store, criteria, tz)
        return Response(content=generate_transactions_csv(views), media_type="text/csv")
    """
    users = users or {}
    tz = tz or timezone.utc

    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(HEADER)

    rows = 0
    for view in views:
        sale = view.sale
        vehicle = view.vehicle
        customer = view.customer
        handler = users.get(sale.handled_by_user_id) if sale.handled_by_user_id else None

        writer.writerow([
            sale.sale_id,
            sale.status.value,
            sanitize_csv_field(vehicle.display_name if vehicle else None, "vehicle"),
            sanitize_csv_field(vehicle.vin if vehicle else None, "vin"),
            sanitize_csv_field(customer.name if customer else None, "customer_name"),
            sanitize_csv_field(customer.phone if customer else None, "customer_phone"),
            _money(sale.agreed_price),
            _money(sale.deposit_amount),
            _money(sale.final_price),
            sale.transaction_date.astimezone(tz).strftime("%Y-%m-%d %H:%M:%S"),
            sanitize_csv_field(
                handler.display_name if handler else sale.handled_by_user_id,
                "handled_by",
            ),
        ])
        rows += 1

    logger.info("Transaction CSV generated", extra={"rows": rows})
    return output.getvalue()


__all__ = [
    "HEADER",
    "generate_transactions_csv",
    "sanitize_csv_field",
]
