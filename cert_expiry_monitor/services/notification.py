"""
邮件通知服务
"""
from datetime import datetime, timezone
from typing import List
import logging

from ..interfaces import NotificationServiceInterface, MailerInterface
from ..models import Decision, NotificationRequest, SendResult
from ..exceptions import SendError


SUBJECT_TEMPLATE = "{site} Certificate Expiration Warning"
# RFC 822 风格时间格式，例如 "02 Jan 06 15:04 UTC"
EXPIRATION_FORMAT = "%d %b %y %H:%M %Z"


class NotificationDispatcher(NotificationServiceInterface):
    """证书过期邮件通知分发器"""

    def __init__(self, mailer: MailerInterface, from_address: str):
        """
        初始化通知分发器

        Args:
            mailer: 邮件发送器
            from_address: 发件人地址
        """
        self.mailer = mailer
        self.from_address = from_address
        self.logger = logging.getLogger(__name__)

    def dispatch(self, site: str, not_after: datetime, recipients: List[str],
                 decision: Decision = Decision.WARNING_DUE) -> List[SendResult]:
        """
        向每个收件人分别发送过期通知

        某个收件人发送失败不影响其余收件人，不在此层重试。

        Args:
            site: 站点标识
            not_after: 证书过期时间
            recipients: 收件人列表
            decision: 策略判定结果

        Returns:
            List[SendResult]: 每个收件人的发送结果
        """
        if not recipients:
            self.logger.warning(f"站点 {site} 需要通知，但没有配置收件人")
            return []

        subject = self.format_subject(site)
        body = self.format_notification_content(site, not_after, decision)

        results = []
        for recipient in recipients:
            try:
                message_id = self.mailer.send(self.from_address, recipient, subject, body)
            except SendError as e:
                self.logger.error(f"站点 {site} 的通知发送到 {recipient} 失败: {e.reason}")
                results.append(SendResult(recipient=recipient, success=False, error=e.reason))
                continue
            except Exception as e:
                # 发送器的意外错误只影响当前收件人
                reason = f"{type(e).__name__}: {str(e)}"
                self.logger.error(f"站点 {site} 的通知发送到 {recipient} 时发生错误: {reason}")
                results.append(SendResult(recipient=recipient, success=False, error=reason))
                continue

            self.logger.info(f"站点 {site} 的通知已发送到 {recipient}")
            results.append(SendResult(recipient=recipient, success=True, message_id=message_id))

        return results

    def dispatch_request(self, request: NotificationRequest) -> List[SendResult]:
        """按通知请求分发"""
        return self.dispatch(request.site, request.not_after, list(request.recipients), request.decision)

    def format_subject(self, site: str) -> str:
        return SUBJECT_TEMPLATE.format(site=site)

    def format_notification_content(self, site: str, not_after: datetime,
                                    decision: Decision = Decision.WARNING_DUE) -> str:
        """
        格式化通知正文

        Args:
            site: 站点标识
            not_after: 证书过期时间
            decision: 策略判定结果

        Returns:
            str: 通知正文
        """
        expiration = format_expiration(not_after)

        if decision is Decision.EXPIRED:
            headline = f"The certificate on {site} expired on {expiration}."
        else:
            headline = f"The certificate on {site} is set to expire on {expiration}."

        lines = [
            headline,
            "",
            "Please renew the certificate and redeploy the affected service.",
            "",
            "This message was sent automatically by the certificate expiration monitor."
        ]
        return "\n".join(lines)


def format_expiration(not_after: datetime) -> str:
    """以UTC格式化过期时间"""
    if not_after.tzinfo is None:
        not_after = not_after.replace(tzinfo=timezone.utc)
    return not_after.astimezone(timezone.utc).strftime(EXPIRATION_FORMAT)
