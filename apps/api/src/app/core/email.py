"""
Email Service using Resend

Builds the transactional emails for signup, enrollment and password reset,
and sends them through Resend. Rendering is separate from sending so a
message that failed to send can be queued and retried unchanged.
"""

import asyncio
import logging
from dataclasses import dataclass
from html import escape

import resend

from app.core.config import settings

logger = logging.getLogger(__name__)

resend.api_key = settings.resend_api_key

SCHOOL_NAME = "Campus SIS"


@dataclass(frozen=True)
class EmailMessage:
    """A rendered email ready to hand to the gateway."""

    to_email: str
    subject: str
    html_content: str


async def send_email(message: EmailMessage) -> bool:
    """
    Send an email using Resend.

    The blocking SDK call runs in a worker thread and is bounded by
    EMAIL_TIMEOUT_SECONDS.

    Returns:
        True if the gateway accepted the message, False on any failure
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {message.to_email} | SUBJECT: {message.subject}")
        return True

    params: resend.Emails.SendParams = {
        "from": settings.email_from,
        "to": [message.to_email],
        "subject": message.subject,
        "html": message.html_content,
    }

    try:
        email = await asyncio.wait_for(
            asyncio.to_thread(resend.Emails.send, params),
            timeout=settings.email_timeout_seconds,
        )
        logger.info(f"Email sent successfully to {message.to_email}, id: {email['id']}")
        return True
    except TimeoutError:
        logger.error(
            f"Timed out after {settings.email_timeout_seconds}s sending email to {message.to_email}"
        )
        return False
    except Exception as e:
        logger.error(f"Failed to send email to {message.to_email}: {e}")
        return False


def _render_layout(heading: str, body: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
            body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
            .header {{ color: #14532d; margin-bottom: 24px; }}
            .button {{ display: inline-block; background-color: #14532d; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }}
            .credentials {{ background-color: #f3f4f6; padding: 16px; border-radius: 8px; margin: 16px 0; font-family: monospace; }}
            .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <h1 class="header">{heading}</h1>
            {body}
            <div class="footer">
                <p>{SCHOOL_NAME} - School Information System</p>
            </div>
        </div>
    </body>
    </html>
    """


def render_verification_email(to_email: str, name: str, token: str) -> EmailMessage:
    """Signup verification link pointing at GET /api/v1/verify."""
    verification_url = f"{settings.public_base_url}/api/v1/verify?token={token}"
    body = f"""
            <p>Hello {escape(name)},</p>
            <p>Thanks for creating a {SCHOOL_NAME} account. Please confirm your email address:</p>
            <a href="{verification_url}" class="button">Verify Email</a>
            <p>Or copy and paste this link into your browser:</p>
            <p style="word-break: break-all; color: #2563eb;">{verification_url}</p>
            <p>If you didn't create this account, you can safely ignore this email.</p>
    """
    return EmailMessage(
        to_email=to_email,
        subject=f"Verify your {SCHOOL_NAME} account",
        html_content=_render_layout("Verify Your Email", body),
    )


def render_application_received(
    to_email: str,
    applicant_name: str,
    target_grade: str,
) -> EmailMessage:
    body = f"""
            <p>Hello {escape(applicant_name)},</p>
            <p>We received your enrollment application for <strong>{escape(target_grade)}</strong>.</p>
            <p>Our registrar will review it and you will receive another email once a decision is made.</p>
    """
    return EmailMessage(
        to_email=to_email,
        subject=f"{SCHOOL_NAME} enrollment application received",
        html_content=_render_layout("Application Received", body),
    )


def render_enrollment_approved(
    to_email: str,
    student_name: str,
    target_grade: str,
    lrn: str,
    temp_password: str,
) -> EmailMessage:
    """Credentials email for a newly provisioned student account."""
    login_url = f"{settings.frontend_url}/login"
    body = f"""
            <p>Hello {escape(student_name)},</p>
            <p>Your enrollment for <strong>{escape(target_grade)}</strong> has been approved. Your student account is ready.</p>
            <div class="credentials">
                <p><strong>Email:</strong> {escape(to_email)}</p>
                <p><strong>LRN:</strong> {escape(lrn)}</p>
                <p><strong>Temporary password:</strong> {escape(temp_password)}</p>
            </div>
            <p>You will be asked to change this password when you first sign in.</p>
            <a href="{login_url}" class="button">Sign In</a>
    """
    return EmailMessage(
        to_email=to_email,
        subject=f"Welcome to {SCHOOL_NAME} - your student account",
        html_content=_render_layout("Enrollment Approved", body),
    )


def render_enrollment_rejected(
    to_email: str,
    applicant_name: str,
    reason: str | None,
) -> EmailMessage:
    reason_html = (
        f"<p><strong>Reason:</strong> {escape(reason)}</p>" if reason else ""
    )
    body = f"""
            <p>Hello {escape(applicant_name)},</p>
            <p>After review, we are unable to approve your enrollment application at this time.</p>
            {reason_html}
            <p>Please contact the registrar's office if you have questions.</p>
    """
    return EmailMessage(
        to_email=to_email,
        subject=f"Update on your {SCHOOL_NAME} enrollment application",
        html_content=_render_layout("Application Update", body),
    )


def render_password_reset(to_email: str, name: str, token: str) -> EmailMessage:
    reset_url = f"{settings.frontend_url}/reset-password?token={token}"
    body = f"""
            <p>Hello {escape(name)},</p>
            <p>We received a request to reset your password.</p>
            <a href="{reset_url}" class="button">Reset Password</a>
            <p style="word-break: break-all; color: #2563eb;">{reset_url}</p>
            <p><strong>This link expires in {settings.password_reset_expiry_minutes} minutes.</strong></p>
            <p>If you didn't request this, you can ignore this email. Your password will not change.</p>
    """
    return EmailMessage(
        to_email=to_email,
        subject=f"Reset your {SCHOOL_NAME} password",
        html_content=_render_layout("Password Reset", body),
    )
