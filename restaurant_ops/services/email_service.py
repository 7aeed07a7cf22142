"""
Email service for quote delivery.
Uses Flask-Mail for SMTP integration with UTF-8 support.
"""
import logging
from flask import current_app
from flask_mail import Mail, Message
from markupsafe import escape

from restaurant_ops.utils.formatters import money_str, date_us

logger = logging.getLogger(__name__)

mail = Mail()


def init_mail(app):
    """Initialize Flask-Mail with app."""
    mail.init_app(app)


def _mail_suppressed() -> bool:
    """Sending deliberately switched off (tests, local development)."""
    return bool(current_app.config.get("MAIL_SUPPRESS_SEND", False))


def _mail_configured() -> bool:
    """Check if an SMTP server and account are configured."""
    cfg = current_app.config
    return bool(cfg.get("MAIL_SERVER") and cfg.get("MAIL_USERNAME"))


def send_email(to: str, subject: str, html: str, text: str | None = None) -> bool:
    """
    Send a single HTML email.

    Args:
        to: Recipient email
        subject: Email subject
        html: HTML body
        text: Plain text body (optional)

    Returns:
        True if sent (or sending is suppressed), False when mail is not
        configured or the transport fails
    """
    try:
        logger.info(f"[EMAIL] Attempting to send email to {to}")

        if _mail_suppressed():
            logger.info(f"[MAIL SUPPRESSED] Email to {to} not sent (MAIL_SUPPRESS_SEND)")
            return True

        if not _mail_configured():
            logger.warning(f"[MAIL DISABLED] Email not delivered to {to}")
            logger.warning(f"[MAIL DISABLED] MAIL_SERVER={current_app.config.get('MAIL_SERVER')}")
            logger.warning(f"[MAIL DISABLED] MAIL_USERNAME={'SET' if current_app.config.get('MAIL_USERNAME') else 'NOT SET'}")
            return False

        msg = Message(
            subject=subject,
            recipients=[to],
            body=text or subject,
            html=html,
        )

        logger.info(f"[EMAIL] Sending via Flask-Mail (SMTP: {current_app.config.get('MAIL_SERVER')}:{current_app.config.get('MAIL_PORT')})...")
        mail.send(msg)
        logger.info(f"[EMAIL] ✓ Email sent successfully to {to}")
        return True

    except Exception as e:
        logger.exception(f"[EMAIL] ✗ Failed to send email to {to}: {str(e)}")
        return False


def render_quote_email(context: dict) -> tuple:
    """
    Render the customer-facing quote email.

    Args:
        context: data built by notification_service.build_quote_email_context
                 (customer, business, quote number, items, rounded totals)

    Returns:
        (subject, html_body)
    """
    business = context.get('business', {})
    business_name = business.get('name') or 'Our Kitchen'
    customer_name = context.get('customer_name') or 'Valued Customer'
    totals = context['totals']

    subject = f"Quote #{context['quote_number']} - {business_name}"

    rows = "".join(
        f"""
                <tr>
                    <td>{escape(item['description'])}</td>
                    <td align="center">{escape(item['quantity_label'])}</td>
                    <td align="right">{money_str(item['unit_price'])}</td>
                    <td align="right">{money_str(item['total'])}</td>
                </tr>
        """
        for item in context['line_items']
    )

    event_lines = ""
    if context.get('event_date'):
        event_lines += f"<p><strong>Event Date:</strong> {date_us(context['event_date'])}</p>"
    if context.get('event_location'):
        event_lines += f"<p><strong>Location:</strong> {escape(context['event_location'])}</p>"
    if context.get('guest_count'):
        event_lines += f"<p><strong>Guest Count:</strong> {context['guest_count']}</p>"

    valid_until = date_us(context['valid_until']) if context.get('valid_until') else 'further notice'
    deposit_due = f" by {date_us(context['deposit_due_date'])}" if context.get('deposit_due_date') else ""
    terms = f"<h3>Terms</h3><p>{escape(context['terms'])}</p>" if context.get('terms') else ""

    html_body = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="UTF-8">
        <style>
            body {{ font-family: Arial, sans-serif; color: #333; }}
            .container {{ max-width: 600px; margin: auto; padding: 20px; }}
            .header {{ background: #FF6B35; color: #fff; padding: 20px; text-align: center; }}
            .items {{ width: 100%; border-collapse: collapse; margin: 20px 0; }}
            .items th {{ background: #f0f0f0; padding: 8px; text-align: left; }}
            .items td {{ padding: 8px; border-bottom: 1px solid #eee; }}
            .totals td {{ padding: 4px 8px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="header">
                <h1>{escape(business_name)}</h1>
                <h2>Quote {escape(context['quote_number'])}</h2>
            </div>
            <p>Dear {escape(customer_name)},</p>
            <p>Thank you for your interest in our services. Please find your quote details below.</p>
            {event_lines}
            <table class="items">
                <tr><th>Item</th><th>Qty</th><th>Price</th><th>Total</th></tr>
                {rows}
            </table>
            <table class="totals" align="right">
                <tr><td>Subtotal:</td><td align="right">{money_str(totals['subtotal'])}</td></tr>
                <tr><td>Tax:</td><td align="right">{money_str(totals['tax'])}</td></tr>
                <tr><td><strong>Total:</strong></td><td align="right"><strong>{money_str(totals['grand_total'])}</strong></td></tr>
                <tr><td>Deposit due{deposit_due}:</td><td align="right">{money_str(totals['deposit'])}</td></tr>
            </table>
            <div style="clear: both;"></div>
            {terms}
            <p><small>This quote is valid until {valid_until}.</small></p>
        </div>
    </body>
    </html>
    """

    return subject, html_body
