"""Outbound email over SMTP and the contact-form message templates."""

from __future__ import annotations

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

logger = logging.getLogger("portfolio_api.mail")


class MailerNotConfigured(RuntimeError):
    pass


class SMTPMailer:
    """Send HTML emails with the configured SMTP account.

    `send` raises on any failure; callers decide whether the failure is
    fatal (reply) or only logged (notifications).
    """

    def __init__(self, host: str, port: int, username: str, password: str, sender: str, timeout: float = 15.0):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "SMTPMailer":
        return cls(
            host=settings.EMAIL_HOST,
            port=settings.EMAIL_PORT,
            username=settings.EMAIL_USER,
            password=settings.EMAIL_PASS,
            sender=settings.EMAIL_FROM,
        )

    def send(self, recipient: str, subject: str, html_body: str) -> None:
        if not self.host:
            raise MailerNotConfigured("EMAIL_HOST is not configured")
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = recipient
        msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.starttls()
            if self.username:
                server.login(self.username, self.password)
            server.send_message(msg)
        logger.info("email_sent to=%s subject=%r", recipient, subject)


def _e(value) -> str:
    return html.escape(str(value)) if value is not None else ""


def notification_email(contact) -> tuple[str, str]:
    """Subject and body telling the site owner about a new submission."""
    subject = f"New Contact Form Submission: {contact.subject}"
    body = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2>New Contact Form Submission</h2>
      <p><strong>Name:</strong> {_e(contact.name)}</p>
      <p><strong>Email:</strong> {_e(contact.email)}</p>
      <p><strong>Phone:</strong> {_e(contact.phone or 'Not provided')}</p>
      <p><strong>Company:</strong> {_e(contact.company or 'Not provided')}</p>
      <p><strong>Subject:</strong> {_e(contact.subject)}</p>
      <p><strong>Project Type:</strong> {_e(contact.project_type)}</p>
      <p><strong>Budget:</strong> {_e(contact.budget)}</p>
      <p><strong>Timeline:</strong> {_e(contact.timeline)}</p>
      <h3>Message:</h3>
      <p>{_e(contact.message)}</p>
      <p style="font-size: 12px; color: #666;">Sent from: {_e(contact.ip_address)}<br>
      User Agent: {_e(contact.user_agent)}<br>Timestamp: {_e(contact.created_at)}</p>
    </div>
    """
    return subject, body


def confirmation_email(contact) -> tuple[str, str]:
    """Subject and body acknowledging a submission to its sender."""
    subject = "Thank you for contacting me!"
    body = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2>Thank you for your message!</h2>
      <p>Hi {_e(contact.name)},</p>
      <p>I've received your message about "{_e(contact.subject)}" and I'll get back to you as soon as possible.</p>
      <p>I typically respond within 24-48 hours during business days.</p>
      <p><strong>Project Type:</strong> {_e(contact.project_type)}<br>
      <strong>Timeline:</strong> {_e(contact.timeline)}</p>
    </div>
    """
    return subject, body


def reply_email(contact, message: str) -> tuple[str, str]:
    subject = f"Re: {contact.subject}"
    sent_on = contact.created_at.strftime("%Y-%m-%d") if contact.created_at else ""
    body = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2>Thank you for contacting me!</h2>
      <p>Hi {_e(contact.name)},</p>
      <p>{_e(message)}</p>
      <hr style="border: 1px solid #eee; margin: 20px 0;">
      <p style="color: #666; font-size: 14px;">This is a reply to your message: "{_e(contact.subject)}"</p>
      <p style="color: #666; font-size: 14px;">Original message sent on: {sent_on}</p>
    </div>
    """
    return subject, body
