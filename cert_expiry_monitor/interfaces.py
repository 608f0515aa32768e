"""
服务接口定义
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Union
from .models import CertificateSnapshot, SendResult, Target, TargetOutcome


class CertificateProbeInterface(ABC):
    """证书探测器接口"""

    @abstractmethod
    def probe(self, target: Union[Target, str], timeout: Optional[float] = None) -> CertificateSnapshot:
        """探测单个目标的叶子证书"""
        pass


class MailerInterface(ABC):
    """邮件发送接口"""

    @abstractmethod
    def send(self, from_address: str, to_address: str, subject: str, body: str) -> str:
        """发送单封邮件，返回消息ID"""
        pass


class NotificationServiceInterface(ABC):
    """通知服务接口"""

    @abstractmethod
    def dispatch(self, site: str, not_after: datetime, recipients: List[str]) -> List[SendResult]:
        """向每个收件人发送过期通知"""
        pass

    @abstractmethod
    def format_notification_content(self, site: str, not_after: datetime) -> str:
        """格式化通知内容"""
        pass


class LoggerServiceInterface(ABC):
    """日志服务接口"""

    @abstractmethod
    def log_check_start(self, target_count: int):
        """记录检查开始"""
        pass

    @abstractmethod
    def log_outcome(self, outcome: TargetOutcome):
        """记录目标检查结果"""
        pass

    @abstractmethod
    def log_error(self, site: str, error: Exception):
        """记录错误信息"""
        pass
