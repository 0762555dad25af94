"""
Email sending service using SMTP.
"""
import smtplib
from datetime import date
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional
import logging
from app.core.config import (
    SMTP_HOST,
    SMTP_PORT,
    SMTP_USE_SSL,
    SMTP_USERNAME,
    SMTP_PASSWORD,
    SMTP_FROM_EMAIL,
    SMTP_FROM_NAME,
)

logger = logging.getLogger(__name__)

_FRENCH_MONTHS = (
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
)


def is_email_configured() -> bool:
    return bool(SMTP_HOST and SMTP_USERNAME and SMTP_PASSWORD)


def send_email(
    to_email: str,
    subject: str,
    html_body: str,
    text_body: Optional[str] = None
) -> bool:
    """
    Send an email via SMTP.

    Args:
        to_email: Recipient email address
        subject: Email subject
        html_body: HTML email body
        text_body: Plain text email body (optional)

    Returns:
        True if email sent successfully, False otherwise
    """
    if not is_email_configured():
        logger.error("SMTP configuration is missing. Cannot send email.")
        return False

    try:
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = f"{SMTP_FROM_NAME} <{SMTP_FROM_EMAIL or SMTP_USERNAME}>"
        msg['To'] = to_email

        if text_body:
            msg.attach(MIMEText(text_body, 'plain', 'utf-8'))

        msg.attach(MIMEText(html_body, 'html', 'utf-8'))

        if SMTP_USE_SSL:
            server = smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, timeout=10)
        else:
            server = smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=10)

        # Closes the connection even when login or sending fails
        with server:
            if not SMTP_USE_SSL:
                server.starttls()
            server.login(SMTP_USERNAME, SMTP_PASSWORD)
            server.send_message(msg)

        logger.info(f"Email sent successfully to {to_email}")
        return True

    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {str(e)}", exc_info=True)
        return False


def format_long_date(value: date) -> str:
    """Format a date as '1 mars 2025'."""
    return f"{value.day} {_FRENCH_MONTHS[value.month - 1]} {value.year}"


def renewal_urgency_text(days_until: int) -> str:
    if days_until == 1:
        return "⚠️ DEMAIN"
    if days_until <= 5:
        return f"⚠️ Dans {days_until} jours"
    return f"Dans {days_until} jours"


def send_renewal_alert_email(
    to_email: str,
    subscription_name: str,
    icon: str,
    days_until: int,
    renewal_date: date,
) -> bool:
    """
    Send a renewal reminder for one subscription.

    Args:
        to_email: Recipient email address
        subscription_name: Subscription name
        icon: Subscription icon (emoji)
        days_until: Days left before renewal
        renewal_date: Date of the renewal

    Returns:
        True if email sent successfully, False otherwise
    """
    urgency_text = renewal_urgency_text(days_until)
    formatted_date = format_long_date(renewal_date)
    color = "#dc2626" if days_until <= 5 else "#ea580c"

    subject = f"{icon} {subscription_name} - Renouvellement {urgency_text}"

    text_body = f"""{icon} {subscription_name}

{urgency_text}

Votre abonnement {subscription_name} sera renouvelé le {formatted_date}.

— Mes Abonnements IA"""

    html_body = f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
</head>
<body style="font-family: system-ui, -apple-system, sans-serif;">
    <div style="max-width: 500px; margin: 0 auto; padding: 20px;">
        <h1 style="font-size: 24px; margin-bottom: 16px;">{icon} {subscription_name}</h1>
        <p style="font-size: 18px; color: {color}; font-weight: bold;">{urgency_text}</p>
        <p style="font-size: 16px; color: #666;">
            Votre abonnement {subscription_name} sera renouvelé le <strong>{formatted_date}</strong>.
        </p>
        <p style="font-size: 14px; color: #888; margin-top: 24px;">— Mes Abonnements IA</p>
    </div>
</body>
</html>"""

    return send_email(
        to_email=to_email,
        subject=subject,
        html_body=html_body,
        text_body=text_body
    )
