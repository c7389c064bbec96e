"""
Notification Service - welcome emails for accounts created by roster imports.

Sending never raises; every send returns {"success": bool, ...} and the bulk
helper aggregates them. Missing SMTP settings are logged and reported as
failed sends.
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Dict, Iterable, Optional

from pms.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

STUDENT_SUBJECT = "Welcome to PMS - Your Student Account is Ready!"

STUDENT_BODY = """Welcome to PMS - Placement Management System!

Hello {firstName} {lastName},

Your student account has been created by the placement staff.

Login details:
  Email: {email}
  Student ID: {studentId}
  Temporary password: {password}

Sign in at {login_url} and change your password after the first login.

- PMS Placement Cell
"""


class NotificationService:

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def configured(self) -> bool:
        s = self.settings
        return bool(s.smtp_host and s.smtp_user and s.smtp_password and (s.smtp_from or s.smtp_user))

    def check(self) -> bool:
        """True when the SMTP server accepts our credentials."""
        try:
            with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=10) as server:
                server.starttls()
                server.login(self.settings.smtp_user, self.settings.smtp_password)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("SMTP check failed: %s", e)
            return False
        return True

    def send_email(self, to_email: str, subject: str, body: str) -> Dict[str, Any]:
        if not self.configured:
            logger.warning("SMTP is not configured; email to %s not sent", to_email)
            return {"success": False, "email": to_email, "error": "SMTP is not configured"}

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.settings.smtp_from or self.settings.smtp_user
        msg["To"] = to_email
        msg.set_content(body)

        try:
            with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=10) as server:
                server.starttls()
                server.login(self.settings.smtp_user, self.settings.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Email send to %s failed: %s", to_email, e)
            return {"success": False, "email": to_email, "error": str(e)}

        logger.info("Welcome email sent to %s", to_email)
        return {"success": True, "email": to_email}

    def send_student_welcome_email(self, student: Dict[str, Any], password: str) -> Dict[str, Any]:
        body = STUDENT_BODY.format(
            firstName=student.get("firstName", ""),
            lastName=student.get("lastName", ""),
            email=student["email"],
            studentId=student.get("studentId", ""),
            password=password,
            login_url=f"{self.settings.frontend_url.rstrip('/')}/login",
        )
        return self.send_email(student["email"], STUDENT_SUBJECT, body)

    def send_bulk_student_welcome_emails(self, students: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
        """Send one welcome email per created student (each entry carries `defaultPassword`)."""
        sent = 0
        failed = []
        for student in students:
            result = self.send_student_welcome_email(student, student.get("defaultPassword", ""))
            if result["success"]:
                sent += 1
            else:
                failed.append({"email": student.get("email"), "error": result.get("error")})

        logger.info("Bulk welcome emails: %s sent, %s failed", sent, len(failed))
        if failed:
            logger.warning("Welcome emails failed for: %s", ", ".join(f["email"] or "?" for f in failed))
        return {"totalSent": sent, "totalFailed": len(failed), "failed": failed}


def get_notification_service() -> NotificationService:
    """FastAPI dependency; overridden in tests."""
    return NotificationService()
