"""
Order notification emails via SMTP, with an .ics pickup reminder attached when the order has a slot.
Set SMTP_USER, SMTP_PASSWORD and BUSINESS_EMAIL in .env; without them sending is skipped.
"""
import logging
import smtplib
from datetime import datetime, timedelta
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any

from icalendar import Alarm, Calendar, Event

from farmstand.config import settings
from farmstand.core.dates import to_local, utcnow

logger = logging.getLogger(__name__)

PICKUP_DURATION_MINUTES = 15


def _from_address() -> str:
    if (settings.notify_from or "").strip():
        return settings.notify_from.strip()
    user = (settings.smtp_user or "").strip()
    if user:
        return f"Little Bow Meadows <{user}>"
    return "Little Bow Meadows <noreply@localhost>"


def format_money(cents: int | None) -> str:
    return f"${(cents or 0) / 100:,.2f} {settings.currency}"


def build_pickup_ics(start: datetime, customer_name: str | None = None, uid: str | None = None) -> bytes:
    """Calendar invite for one pickup, with a display alarm two hours before."""
    local_start = to_local(start)
    cal = Calendar()
    cal.add("prodid", "-//Little Bow Meadows//Pickup Reminder//EN")
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "REQUEST")

    event = Event()
    event.add("uid", uid or f"pickup-{int(local_start.timestamp())}@littlebowmeadows.ca")
    event.add("dtstamp", utcnow())
    event.add("dtstart", local_start)
    event.add("dtend", local_start + timedelta(minutes=PICKUP_DURATION_MINUTES))
    event.add("summary", "Farm Pickup - Little Bow Meadows")
    who = f" for {customer_name}" if customer_name else ""
    event.add("description", f"Your scheduled pickup time at Little Bow Meadows{who}")
    event.add("location", settings.farm_location)
    event.add("status", "CONFIRMED")

    alarm = Alarm()
    alarm.add("action", "DISPLAY")
    alarm.add("trigger", timedelta(hours=-2))
    alarm.add("description", "Pickup Reminder")
    event.add_component(alarm)

    cal.add_component(event)
    return cal.to_ical()


def send_owner_order_email(
    to_email: str | None,
    *,
    total_cents: int | None,
    items: list[dict[str, Any]],
    pickup_start: datetime | None = None,
    customer_name: str | None = None,
) -> bool:
    """
    Tell the farm about a paid order. items have description and quantity.
    Returns True if sent, False if skipped or failed.
    """
    to_email = (to_email or "").strip()
    if not to_email:
        return False
    user = (settings.smtp_user or "").strip()
    password = (settings.smtp_password or "").strip()
    if not user or not password:
        logger.debug("SMTP_USER or SMTP_PASSWORD not set; skipping order email")
        return False
    summary = "\n".join(f"• {i.get('description') or 'Item'} x {i.get('quantity') or 1}" for i in items)
    body = f"New paid order.\n\n{summary}\n\nTotal: {format_money(total_cents)}"
    if pickup_start is not None:
        body += f"\n\nPickup Time: {to_local(pickup_start).strftime('%a %b %d, %I:%M %p')}"

    msg = MIMEMultipart("mixed")
    msg["Subject"] = "New farm order"
    msg["From"] = _from_address()
    msg["To"] = to_email
    msg.attach(MIMEText(body, "plain"))
    if pickup_start is not None:
        ics = MIMEApplication(build_pickup_ics(pickup_start, customer_name), _subtype="ics")
        ics.add_header("Content-Disposition", "attachment", filename="pickup-reminder.ics")
        msg.attach(ics)
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as server:
            server.starttls()
            server.login(user, password)
            server.sendmail(user, [to_email], msg.as_string())
        logger.info("Order email sent to %s (%s items)", to_email, len(items))
        return True
    except Exception as e:
        logger.exception("Failed to send order email: %s", e)
        return False


def send_restock_email(to_email: str, product_name: str) -> bool:
    """One-time back-in-stock notice to a waitlist subscriber. Returns True if sent."""
    to_email = (to_email or "").strip()
    user = (settings.smtp_user or "").strip()
    password = (settings.smtp_password or "").strip()
    if not to_email or not user or not password:
        logger.debug("SMTP credentials or recipient missing; skipping restock email")
        return False
    shop_url = f"{settings.site_url.rstrip('/')}/shop"
    body = (
        f"Good news from Little Bow Meadows!\n\n"
        f"The {product_name} you were waiting for is now available.\n\n"
        f"Shop now: {shop_url}\n\n"
        "This is a one-time notification. If you're no longer interested, you can safely ignore this email."
    )
    msg = MIMEText(body, "plain")
    msg["Subject"] = f"{product_name} is back in stock!"
    msg["From"] = _from_address()
    msg["To"] = to_email
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as server:
            server.starttls()
            server.login(user, password)
            server.sendmail(user, [to_email], msg.as_string())
        logger.info("Restock email for %s sent to %s", product_name, to_email)
        return True
    except Exception as e:
        logger.exception("Failed to send restock email to %s: %s", to_email, e)
        return False
