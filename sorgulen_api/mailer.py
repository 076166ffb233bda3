"""Order emails: composition and SMTP delivery.

Two messages go out for every new order:
- a confirmation to the customer
- an alert to the operations mailbox with every submitted field and a link
  to the admin surface

Composition is pure (order + settings in, message out). Delivery is a single
attempt; callers decide what a failure means.
"""

from __future__ import annotations

import html
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional, Protocol

from .config import Settings
from .errors import NotificationError
from .models import SERVICE_LABELS, Order

logger = logging.getLogger("sorgulen_api.mailer")

SMTP_TIMEOUT_SECONDS = 30


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    text: str
    html: str


class MailTransport(Protocol):
    def send(self, to: str, subject: str, text: str, html: str) -> None:
        ...


def _service_label(order: Order) -> str:
    return SERVICE_LABELS.get(order.service, order.service.value)


# =============================================================================
# COMPOSITION
# =============================================================================

def compose_customer_confirmation(order: Order, settings: Settings) -> OutgoingEmail:
    """Confirmation addressed to the customer, with order id and service."""
    company = settings.company_name
    customer = order.customer
    service = _service_label(order)

    text = (
        f"Hei {customer.name},\n\n"
        f"Takk for din bestilling hos {company}.\n\n"
        f"Ordrenummer: {order.id}\n"
        f"Tjeneste: {service}\n"
        "Vi tar kontakt med deg så snart som mulig for å avtale videre.\n\n"
        "Dette er en automatisert melding, vennligst ikke svar direkte på denne e-posten."
    )
    body = (
        f"<p>Hei {html.escape(customer.name)},</p>"
        f"<p>Takk for din bestilling hos {html.escape(company)}.</p>"
        f"<p><strong>Ordrenummer:</strong> {order.id}<br/>"
        f"<strong>Tjeneste:</strong> {html.escape(service)}</p>"
        "<p>Vi tar kontakt med deg så snart som mulig for å avtale videre.</p>"
        "<p>Dette er en automatisert melding, vennligst ikke svar direkte på denne e-posten.</p>"
    )
    return OutgoingEmail(
        to=customer.email,
        subject=f"Ordrebekreftelse – {company}",
        text=text,
        html=body,
    )


def compose_internal_alert(order: Order, settings: Settings) -> Optional[OutgoingEmail]:
    """Alert for the operations mailbox. None if no mailbox is configured."""
    to = settings.alert_recipient
    if not to:
        return None

    c = order.customer
    esc = html.escape
    service = _service_label(order)
    admin_url = settings.admin_url

    text = (
        "Ny bestilling mottatt\n\n"
        f"Ordrenummer: {order.id}\n"
        f"Tjeneste: {service}\n"
        f"Kunde: {c.name} <{c.email}>\n"
        f"Telefon: {c.phone}\n"
        f"Adresse: {c.address}, {c.zip} {c.city}\n"
        f"Detaljer: {order.details}\n"
        f"Kildeside: {order.sourcePage}\n\n"
        f"Administrasjonsgrensesnitt: {admin_url}"
    )
    body = (
        "<p>Ny bestilling mottatt</p>"
        f"<p><strong>Ordrenummer:</strong> {order.id}<br/>"
        f"<strong>Tjeneste:</strong> {esc(service)}</p>"
        f"<p><strong>Kunde:</strong> {esc(c.name)} &lt;{esc(str(c.email))}&gt;<br/>"
        f"<strong>Telefon:</strong> {esc(c.phone)}<br/>"
        f"<strong>Adresse:</strong> {esc(c.address)}, {esc(c.zip)} {esc(c.city)}</p>"
        f"<p><strong>Detaljer:</strong> {esc(order.details)}<br/>"
        f"<strong>Kildeside:</strong> {esc(order.sourcePage)}</p>"
        f'<p>Administrasjonsgrensesnitt: <a href="{esc(admin_url)}">{esc(admin_url)}</a></p>'
    )
    return OutgoingEmail(
        to=to,
        subject=f"Ny bestilling – {settings.company_name}",
        text=text,
        html=body,
    )


# =============================================================================
# DELIVERY
# =============================================================================

class SmtpTransport:
    """Sends multipart (plain + HTML) messages over SMTP."""

    def __init__(self, settings: Settings):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.secure = settings.smtp_secure
        self.user = settings.smtp_user
        self.password = settings.smtp_password
        self.sender = settings.mail_from

    def _build(self, to: str, subject: str, text: str, html_body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(text)
        msg.add_alternative(html_body, subtype="html")
        return msg

    def send(self, to: str, subject: str, text: str, html: str) -> None:
        msg = self._build(to, subject, text, html)
        if self.secure:
            server = smtplib.SMTP_SSL(self.host, self.port, timeout=SMTP_TIMEOUT_SECONDS)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=SMTP_TIMEOUT_SECONDS)
        with server:
            if not self.secure:
                server.starttls()
            if self.user and self.password:
                server.login(self.user, self.password)
            server.send_message(msg)
        logger.info(f"SMTP email sent to {to}")


class Mailer:
    """Notification service: one delivery attempt per message, no retry."""

    def __init__(self, transport: MailTransport, settings: Settings):
        self.transport = transport
        self.settings = settings

    def _deliver(self, message: OutgoingEmail) -> None:
        try:
            self.transport.send(message.to, message.subject, message.text, message.html)
        except Exception as e:
            raise NotificationError(f"Delivery to {message.to} failed: {e}") from e

    def send_customer_confirmation(self, order: Order) -> None:
        self._deliver(compose_customer_confirmation(order, self.settings))

    def send_internal_alert(self, order: Order) -> bool:
        """Send the operations alert. Returns False if no mailbox is configured."""
        message = compose_internal_alert(order, self.settings)
        if message is None:
            logger.warning(f"No COMPANY_EMAIL or SMTP_USER configured; alert for order {order.id} skipped")
            return False
        self._deliver(message)
        return True
