"""
Shop email templates: customer order confirmation and admin alerts.
"""

from typing import Optional, Sequence

from libs.common.config import get_settings
from libs.common.emails.core import send_email

CURRENCY_SYMBOLS = {"GBP": "£", "EUR": "€", "USD": "$"}


def format_money(amount: float, currency: str = "GBP") -> str:
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol:
        return f"{symbol}{amount:,.2f}"
    return f"{amount:,.2f} {currency.upper()}"


def format_address(address: Optional[dict]) -> str:
    """One-line rendering of an address dict; empty when unknown."""
    if not address:
        return "Address not provided"
    parts = [
        address.get("name"),
        address.get("address_line_1"),
        address.get("address_line_2"),
        address.get("city"),
        address.get("county"),
        address.get("postcode"),
        address.get("country"),
    ]
    return ", ".join(p for p in parts if p)


def _item_label(item: dict) -> str:
    if item.get("arabic_name"):
        return f"{item['name']} ({item['arabic_name']})"
    return item["name"]


async def send_order_confirmation_email(
    to_email: str,
    customer_name: str,
    order_number: str,
    items: list[dict],  # [{"name", "arabic_name", "image_url", "quantity", "price", "total"}]
    subtotal: float,
    shipping: float,
    tax: float,
    total: float,
    currency: str = "GBP",
    shipping_address: Optional[dict] = None,
    billing_address: Optional[dict] = None,
) -> bool:
    """
    Send the customer confirmation once an order is paid.
    """
    settings = get_settings()
    subject = f"Order Confirmed - #{order_number}"

    items_text = "\n".join(
        f"  - {_item_label(item)} x{item['quantity']} - {format_money(item['total'], currency)}"
        for item in items
    )
    items_html = "".join(
        "<tr>"
        f"<td>{_item_label(item)}</td>"
        f"<td style='text-align:center'>{item['quantity']}</td>"
        f"<td style='text-align:right'>{format_money(item['total'], currency)}</td>"
        "</tr>"
        for item in items
    )
    ship_to = format_address(shipping_address or billing_address)

    body = f"""Hi {customer_name},

Thank you for your order! We've received your payment and your order is now being processed.

Order #{order_number}

Items:
{items_text}

Subtotal: {format_money(subtotal, currency)}
Shipping: {format_money(shipping, currency)}
VAT: {format_money(tax, currency)}
Total: {format_money(total, currency)}

Shipping to: {ship_to}

Questions? Reply to this email or contact {settings.SUPPORT_EMAIL}.

The Ashhadu Team
"""

    html_body = f"""
<!DOCTYPE html>
<html>
<body style="font-family: Georgia, serif; color: #333; line-height: 1.6;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
        <h1 style="color: #1a1a1a;">Order Confirmed</h1>
        <p>Order #{order_number}</p>
        <p>Hi {customer_name},</p>
        <p>Thank you for your order! We've received your payment and your order is now being processed.</p>
        <table style="width: 100%; border-collapse: collapse;">
            <thead>
                <tr><th style="text-align:left">Item</th><th>Qty</th><th style="text-align:right">Total</th></tr>
            </thead>
            <tbody>
                {items_html}
            </tbody>
        </table>
        <p>Subtotal: {format_money(subtotal, currency)}<br/>
           Shipping: {format_money(shipping, currency)}<br/>
           VAT: {format_money(tax, currency)}<br/>
           <strong>Total: {format_money(total, currency)}</strong></p>
        <p><strong>Shipping to</strong><br/>{ship_to}</p>
        <p>The Ashhadu Team</p>
    </div>
</body>
</html>
"""

    return await send_email(
        to_email, subject, body, html_body, reply_to=settings.SUPPORT_EMAIL
    )


async def send_admin_new_order_notification(
    admin_emails: Sequence[str],
    order_number: str,
    order_id: str,
    customer_name: str,
    customer_email: str,
    customer_phone: Optional[str],
    items: list[dict],
    total: float,
    currency: str = "GBP",
    payment_method: Optional[str] = None,
    payment_status: str = "pending",
    shipping_address: Optional[dict] = None,
    urgent: bool = False,
) -> bool:
    """
    Alert shop admins about a new order. Urgent orders get a flagged subject.
    """
    settings = get_settings()
    prefix = "[URGENT] " if urgent else ""
    subject = f"{prefix}New Order #{order_number} - {format_money(total, currency)}"

    items_text = "\n".join(
        f"  - {_item_label(item)} x{item['quantity']} ({item.get('sku') or 'no SKU'})"
        for item in items
    )

    body = f"""New order received{" (high value - please prioritise)" if urgent else ""}.

Order #{order_number} ({order_id})
Customer: {customer_name} <{customer_email}>
Phone: {customer_phone or "not provided"}

Items:
{items_text}

Total: {format_money(total, currency)}
Payment: {payment_method or "Unknown"} ({payment_status})
Ship to: {format_address(shipping_address)}
"""

    return await send_email(
        list(admin_emails), subject, body, reply_to=settings.ADMIN_EMAIL
    )


async def send_admin_low_stock_notification(
    admin_emails: Sequence[str],
    product_name: str,
    current_stock: int,
    threshold: int,
) -> bool:
    """
    Alert shop admins that a product dropped to or below its low-stock threshold.
    """
    settings = get_settings()
    if current_stock <= 0:
        subject = f"Out of stock: {product_name}"
        headline = f"{product_name} is now out of stock."
    else:
        subject = f"Low stock: {product_name} ({current_stock} left)"
        headline = (
            f"{product_name} is running low: {current_stock} left "
            f"(threshold {threshold})."
        )

    body = f"""{headline}

Restock or adjust the listing from the inventory dashboard.
"""
    return await send_email(
        list(admin_emails), subject, body, reply_to=settings.ADMIN_EMAIL
    )
