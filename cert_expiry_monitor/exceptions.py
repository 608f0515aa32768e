"""
异常类型定义
"""
from typing import Optional


class CertMonitorError(Exception):
    """证书监控基础异常"""


class ConfigError(CertMonitorError):
    """配置加载失败（致命，运行前终止）"""


class ProbeError(CertMonitorError):
    """单个目标探测失败（可恢复）"""

    def __init__(self, target: str, reason: str):
        super().__init__(f"{target}: {reason}")
        self.target = target
        self.reason = reason


class ProbeConnectionError(ProbeError):
    """DNS解析、连接、握手失败或超时"""


class NoCertificateError(ProbeError):
    """对端未提供证书"""


class SendError(CertMonitorError):
    """单个收件人邮件发送失败（可恢复）"""

    def __init__(self, recipient: str, reason: str, cause: Optional[Exception] = None):
        super().__init__(f"发送到 {recipient} 失败: {reason}")
        self.recipient = recipient
        self.reason = reason
        self.cause = cause
