"""Unit tests for welcome email delivery."""

from unittest import mock

from pms.core.config import Settings
from pms.services.notification_service import NotificationService

STUDENT = {"firstName": "Neha", "lastName": "Das", "email": "neha@college.edu",
           "studentId": "2026STU001", "defaultPassword": "Student@1234"}


def configured_settings():
    return Settings(
        _env_file=None,
        smtp_host="smtp.test",
        smtp_user="placements@college.edu",
        smtp_password="secret",
    )


class TestSendEmail:
    def test_unconfigured_smtp_is_a_failed_send(self):
        service = NotificationService(Settings(_env_file=None))
        result = service.send_email("a@b.co", "Hi", "body")
        assert result == {"success": False, "email": "a@b.co", "error": "SMTP is not configured"}

    def test_sends_through_smtp(self):
        with mock.patch("pms.services.notification_service.smtplib.SMTP") as smtp:
            server = smtp.return_value.__enter__.return_value
            result = NotificationService(configured_settings()).send_student_welcome_email(STUDENT, "Student@1234")

        assert result["success"] is True
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("placements@college.edu", "secret")
        message = server.send_message.call_args[0][0]
        assert message["To"] == "neha@college.edu"
        assert "2026STU001" in message.get_content()
        assert "Student@1234" in message.get_content()


class TestBulk:
    def test_counts_sent_and_failed(self):
        with mock.patch("pms.services.notification_service.smtplib.SMTP") as smtp:
            server = smtp.return_value.__enter__.return_value
            server.send_message.side_effect = [None, OSError("connection reset")]
            other = dict(STUDENT, email="ravi@college.edu")
            result = NotificationService(configured_settings()).send_bulk_student_welcome_emails([STUDENT, other])

        assert result["totalSent"] == 1
        assert result["totalFailed"] == 1
        assert result["failed"] == [{"email": "ravi@college.edu", "error": "connection reset"}]
