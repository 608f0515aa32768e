"""
邮件发送服务
"""
import ssl
import smtplib
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Optional
import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..interfaces import MailerInterface
from ..exceptions import SendError


DEFAULT_SMTP_PORT = 587


class SMTPMailer(MailerInterface):
    """SMTP邮件发送实现（STARTTLS + PLAIN认证）"""

    def __init__(self, server: str, password: Optional[str] = None, port: int = DEFAULT_SMTP_PORT,
                 username: Optional[str] = None, timeout: float = 30.0, use_tls: bool = True):
        """
        初始化SMTP邮件发送器

        Args:
            server: SMTP服务器主机名
            password: 认证密码，为空时不进行认证
            port: SMTP端口，默认587
            username: 认证用户名，为None时使用发件人地址
            timeout: 连接超时时间（秒）
            use_tls: 是否使用STARTTLS
        """
        self.server = server
        self.password = password
        self.port = port
        self.username = username
        self.timeout = timeout
        self.use_tls = use_tls
        self.logger = logging.getLogger(__name__)

    def send(self, from_address: str, to_address: str, subject: str, body: str) -> str:
        """
        发送单封邮件（单一收件人信封）

        Args:
            from_address: 发件人
            to_address: 收件人
            subject: 主题
            body: 正文

        Returns:
            str: Message-ID

        Raises:
            SendError: 发送失败
        """
        try:
            message = EmailMessage()
            message['Subject'] = subject
            message['From'] = from_address
            message['To'] = to_address
            message['Date'] = formatdate(usegmt=True)
            message['Message-ID'] = make_msgid()
            message.set_content(body)

            with smtplib.SMTP(self.server, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls(context=ssl.create_default_context())
                if self.password:
                    smtp.login(self.username or from_address, self.password)
                smtp.send_message(message, from_addr=from_address, to_addrs=[to_address])
        except (smtplib.SMTPException, OSError, ValueError) as e:
            # ValueError 包括非ASCII凭证导致的 UnicodeEncodeError 和无效的邮件头
            raise SendError(to_address, f"{type(e).__name__}: {str(e)}", e) from e

        self.logger.debug(f"SMTP邮件已提交到 {self.server}:{self.port}，收件人: {to_address}")
        return message['Message-ID']


class SESMailer(MailerInterface):
    """Amazon SES邮件发送实现"""

    def __init__(self, region_name: Optional[str] = None):
        """
        初始化SES邮件发送器

        Args:
            region_name: AWS区域名称，为None时使用boto3默认配置
        """
        self.region_name = region_name
        self.logger = logging.getLogger(__name__)
        self.ses_client = boto3.client('ses', region_name=region_name)

    def send(self, from_address: str, to_address: str, subject: str, body: str) -> str:
        """
        通过SES发送单封邮件

        Returns:
            str: SES MessageId

        Raises:
            SendError: 发送失败
        """
        try:
            response = self.ses_client.send_email(
                Source=from_address,
                Destination={'ToAddresses': [to_address]},
                Message={
                    'Subject': {'Data': subject, 'Charset': 'UTF-8'},
                    'Body': {'Text': {'Data': body, 'Charset': 'UTF-8'}}
                }
            )
        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']
            raise SendError(to_address, f"{error_code}: {error_message}", e) from e
        except BotoCoreError as e:
            raise SendError(to_address, str(e), e) from e

        message_id = response.get('MessageId')
        self.logger.debug(f"SES邮件发送成功，MessageId: {message_id}")
        return message_id


def build_mailer(smtp_settings) -> MailerInterface:
    """
    根据配置创建邮件发送器

    Args:
        smtp_settings: SmtpSettings 配置

    Returns:
        MailerInterface: 邮件发送器
    """
    if smtp_settings.transport == 'ses':
        return SESMailer(region_name=smtp_settings.region)

    return SMTPMailer(
        server=smtp_settings.server,
        password=smtp_settings.password,
        port=smtp_settings.port,
        username=smtp_settings.username
    )
