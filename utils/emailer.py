import logging
import smtplib
from email.message import EmailMessage

from flask import current_app

logger = logging.getLogger(__name__)


def send_email(to_email: str, subject: str, body: str):
    host = current_app.config.get("SMTP_HOST")
    port = current_app.config.get("SMTP_PORT", 587)
    username = current_app.config.get("SMTP_USERNAME")
    password = current_app.config.get("SMTP_PASSWORD")
    from_email = current_app.config.get("SMTP_FROM_EMAIL") or username
    use_tls = current_app.config.get("SMTP_USE_TLS", True)

    if not host or not from_email:
        return False, "Email not configured"
    if not to_email:
        return False, "Recipient missing"

    msg = EmailMessage()
    msg["From"] = from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        with smtplib.SMTP(host, port, timeout=10) as server:
            if use_tls:
                server.starttls()
            if username and password:
                server.login(username, password)
            server.send_message(msg)
        return True, None
    except (smtplib.SMTPException, OSError) as exc:
        return False, str(exc)


def _booking_confirmation_body(booking) -> str:
    customer = booking.customer
    lines = [
        f"Hi {customer.first_name or 'Guest'},",
        "",
        f"Your booking {booking.booking_reference} is confirmed.",
        f"Check-in:  {booking.check_in_date.strftime('%A, %B %d, %Y')}",
        f"Check-out: {booking.check_out_date.strftime('%A, %B %d, %Y')}",
        "",
    ]
    for item in booking.items:
        lines.append(f"- {item.item_name} x{item.quantity}: {item.total_price:,.2f}")
    lines.append("")
    lines.append(f"Total: {booking.total:,.2f}")
    return "\n".join(lines)


def send_booking_confirmation(booking) -> bool:
    """Fire-and-forget confirmation mail. Never raises."""
    try:
        customer = booking.customer
        ok, err = send_email(
            customer.email if customer else None,
            f"Booking Confirmed - {booking.booking_reference}",
            _booking_confirmation_body(booking),
        )
    except Exception:
        logger.exception("Confirmation email for booking %s crashed", booking.id)
        return False

    if not ok:
        logger.warning("Confirmation email for booking %s not sent: %s", booking.booking_reference, err)
    return ok
