"""
数据模型定义
"""
import ipaddress
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Tuple, Dict, Any


DEFAULT_PORT = 443


@dataclass(frozen=True)
class Target:
    """探测目标（host:port）"""
    host: str
    port: int = DEFAULT_PORT

    @classmethod
    def parse(cls, value: str) -> "Target":
        """
        解析目标字符串，未指定端口时使用443

        Args:
            value: host、host:port、[ipv6]:port 或 IPv6 地址

        Returns:
            Target: 解析后的目标

        Raises:
            ValueError: 主机为空或端口无效
        """
        if not isinstance(value, str):
            raise ValueError(f"目标必须是字符串: {value!r}")

        text = value.strip()
        if not text:
            raise ValueError("目标主机不能为空")

        port_text = None
        if text.startswith('['):
            # [ipv6]:port
            end = text.find(']')
            if end == -1:
                raise ValueError(f"目标格式无效: {value}")
            host = text[1:end]
            rest = text[end + 1:]
            if rest:
                if not rest.startswith(':'):
                    raise ValueError(f"目标格式无效: {value}")
                port_text = rest[1:]
        elif text.count(':') > 1:
            # 不带括号的IPv6地址，不包含端口
            host = text
        elif ':' in text:
            host, port_text = text.rsplit(':', 1)
        else:
            host = text

        host = host.strip()
        if not host:
            raise ValueError(f"目标主机不能为空: {value}")

        port = DEFAULT_PORT
        if port_text is not None:
            if not port_text.isdigit():
                raise ValueError(f"端口无效: {value}")
            port = int(port_text)
            if not 1 <= port <= 65535:
                raise ValueError(f"端口超出范围: {value}")

        return cls(host=host, port=port)

    @property
    def is_ip_address(self) -> bool:
        """主机是否为IP地址"""
        try:
            ipaddress.ip_address(self.host)
            return True
        except ValueError:
            return False

    @property
    def address(self) -> str:
        """返回 host:port 形式"""
        if ':' in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    def __str__(self) -> str:
        return self.address


@dataclass(frozen=True)
class CertificateSnapshot:
    """叶子证书快照"""
    site: str
    not_after: datetime
    subject: str = ""
    issuer: str = ""


class Decision(Enum):
    """过期策略判定结果"""
    OK = "ok"
    WARNING_DUE = "warning_due"
    EXPIRED = "expired"

    @property
    def requires_notification(self) -> bool:
        """已过期或处于警告期内都需要通知"""
        return self in (Decision.WARNING_DUE, Decision.EXPIRED)


@dataclass(frozen=True)
class NotificationRequest:
    """通知请求"""
    site: str
    not_after: datetime
    recipients: Tuple[str, ...]
    decision: Decision = Decision.WARNING_DUE


@dataclass
class SendResult:
    """单个收件人的发送结果"""
    recipient: str
    success: bool
    error: Optional[str] = None
    message_id: Optional[str] = None


@dataclass
class TargetOutcome:
    """单个目标的检查结果"""
    site: str
    not_after: Optional[datetime] = None
    decision: Optional[Decision] = None
    error: Optional[str] = None
    notified: bool = False
    send_results: List[SendResult] = field(default_factory=list)
    subject: Optional[str] = None
    issuer: Optional[str] = None

    @property
    def is_success(self) -> bool:
        """探测是否成功"""
        return self.error is None

    def to_record(self) -> Dict[str, Any]:
        """
        转换为结构化观测记录

        Returns:
            Dict[str, Any]: {site, outcome, valid_until, decision, error, notified, subject, issuer}
        """
        return {
            'site': self.site,
            'outcome': 'valid-until' if self.is_success else 'error',
            'valid_until': self.not_after.isoformat() if self.not_after else None,
            'decision': self.decision.name if self.decision else None,
            'error': self.error,
            'notified': self.notified,
            'subject': self.subject,
            'issuer': self.issuer
        }


@dataclass
class CheckResult:
    """检查结果统计"""
    total_targets: int
    successful_checks: int
    failed_checks: int
    expiring_targets: List[TargetOutcome]
    expired_targets: List[TargetOutcome]
    outcomes: List[TargetOutcome]
    errors: List[str]
    execution_time: float
