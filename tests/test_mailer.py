"""
邮件发送服务测试
"""
import pytest
import smtplib
from unittest.mock import patch, MagicMock

import boto3
from moto import mock_aws

from cert_expiry_monitor.services.mailer import SMTPMailer, SESMailer, build_mailer
from cert_expiry_monitor.services.config_loader import SmtpSettings
from cert_expiry_monitor.exceptions import SendError


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """为moto设置假凭证"""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')


@patch('cert_expiry_monitor.services.mailer.smtplib.SMTP')
class TestSMTPMailer:
    """SMTP邮件发送器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.mailer = SMTPMailer("smtp.example.com", password="secret")

    def test_send_success(self, mock_smtp):
        """测试成功发送"""
        server = mock_smtp.return_value.__enter__.return_value

        message_id = self.mailer.send("monitor@example.com", "ops@example.com", "Subject", "Body")

        mock_smtp.assert_called_once_with("smtp.example.com", 587, timeout=30.0)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("monitor@example.com", "secret")
        server.send_message.assert_called_once()

        args, kwargs = server.send_message.call_args
        message = args[0]
        assert message['Subject'] == "Subject"
        assert message['From'] == "monitor@example.com"
        assert message['To'] == "ops@example.com"
        assert kwargs['from_addr'] == "monitor@example.com"
        assert kwargs['to_addrs'] == ["ops@example.com"]
        assert message_id == message['Message-ID']

    def test_send_with_username(self, mock_smtp):
        """测试使用单独的认证用户名"""
        server = mock_smtp.return_value.__enter__.return_value
        mailer = SMTPMailer("smtp.example.com", password="secret", port=2525, username="apikey")

        mailer.send("monitor@example.com", "ops@example.com", "Subject", "Body")

        mock_smtp.assert_called_once_with("smtp.example.com", 2525, timeout=30.0)
        server.login.assert_called_once_with("apikey", "secret")

    def test_send_without_password_skips_login(self, mock_smtp):
        """测试没有密码时不认证"""
        server = mock_smtp.return_value.__enter__.return_value
        mailer = SMTPMailer("smtp.example.com")

        mailer.send("monitor@example.com", "ops@example.com", "Subject", "Body")

        server.login.assert_not_called()

    def test_send_smtp_error(self, mock_smtp):
        """测试SMTP错误转换为SendError"""
        server = mock_smtp.return_value.__enter__.return_value
        server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"Authentication failed")

        with pytest.raises(SendError) as exc_info:
            self.mailer.send("monitor@example.com", "ops@example.com", "Subject", "Body")

        assert exc_info.value.recipient == "ops@example.com"
        assert "SMTPAuthenticationError" in exc_info.value.reason

    def test_send_non_ascii_password(self, mock_smtp):
        """测试非ASCII凭证导致的编码错误转换为SendError"""
        server = mock_smtp.return_value.__enter__.return_value
        server.login.side_effect = UnicodeEncodeError('ascii', 'pässword', 1, 2, 'ordinal not in range(128)')
        mailer = SMTPMailer("smtp.example.com", password="pässword")

        with pytest.raises(SendError) as exc_info:
            mailer.send("monitor@example.com", "ops@example.com", "Subject", "Body")

        assert exc_info.value.recipient == "ops@example.com"
        assert "UnicodeEncodeError" in exc_info.value.reason

    def test_send_invalid_header(self, mock_smtp):
        """测试非法邮件头转换为SendError"""
        with pytest.raises(SendError):
            self.mailer.send("monitor@example.com", "ops@example.com", "Subject\r\nBcc: x@example.com", "Body")

        mock_smtp.assert_not_called()

    def test_send_connection_error(self, mock_smtp):
        """测试连接错误转换为SendError"""
        mock_smtp.side_effect = ConnectionRefusedError("Connection refused")

        with pytest.raises(SendError, match="Connection refused"):
            self.mailer.send("monitor@example.com", "ops@example.com", "Subject", "Body")


class TestSESMailer:
    """SES邮件发送器测试类"""

    @mock_aws
    def test_send_success(self):
        """测试通过SES发送"""
        ses = boto3.client('ses', region_name='us-east-1')
        ses.verify_email_identity(EmailAddress='monitor@example.com')

        mailer = SESMailer(region_name='us-east-1')
        message_id = mailer.send("monitor@example.com", "ops@example.com", "Subject", "Body")

        assert message_id

    @mock_aws
    def test_send_unverified_sender(self):
        """测试未验证的发件人"""
        mailer = SESMailer(region_name='us-east-1')

        with pytest.raises(SendError) as exc_info:
            mailer.send("unverified@example.com", "ops@example.com", "Subject", "Body")

        assert exc_info.value.recipient == "ops@example.com"


class TestBuildMailer:
    """邮件发送器工厂测试类"""

    def test_build_smtp(self):
        """测试默认创建SMTP发送器"""
        settings = SmtpSettings(server="smtp.example.com", from_address="monitor@example.com",
                                password="secret", port=587)

        mailer = build_mailer(settings)

        assert isinstance(mailer, SMTPMailer)
        assert mailer.server == "smtp.example.com"
        assert mailer.port == 587
        assert mailer.password == "secret"

    @mock_aws
    def test_build_ses(self):
        """测试创建SES发送器"""
        settings = SmtpSettings(server=None, from_address="monitor@example.com",
                                transport='ses', region='eu-west-1')

        mailer = build_mailer(settings)

        assert isinstance(mailer, SESMailer)
        assert mailer.region_name == 'eu-west-1'
