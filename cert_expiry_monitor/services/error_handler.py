"""
探测错误处理服务
"""
import socket
import ssl
from typing import Any, Dict
import logging

from ..exceptions import ProbeError, ProbeConnectionError


class ProbeErrorHandler:
    """探测错误处理器"""

    def __init__(self):
        """初始化探测错误处理器"""
        self.logger = logging.getLogger(__name__)

    def classify(self, target: str, error: Exception) -> Dict[str, Any]:
        """
        对探测过程中的底层异常进行分类

        Args:
            target: 目标地址
            error: 异常对象

        Returns:
            Dict[str, Any]: 错误信息
        """
        error_info = {
            'target': target,
            'error_type': type(error).__name__,
            'error_message': str(error) or type(error).__name__,
            'suggested_action': self._get_suggested_action(error)
        }

        self.logger.warning(
            f"目标 {target} 探测失败: {error_info['error_type']}: {error_info['error_message']}，"
            f"建议: {error_info['suggested_action']}"
        )

        return error_info

    def to_probe_error(self, target: str, error: Exception) -> ProbeError:
        """
        将底层异常转换为 ProbeError

        Args:
            target: 目标地址
            error: 异常对象

        Returns:
            ProbeError: 可直接抛出的探测错误
        """
        if isinstance(error, ProbeError):
            return error

        error_info = self.classify(target, error)
        return ProbeConnectionError(
            target,
            f"{error_info['error_type']}: {error_info['error_message']}"
        )

    def _get_suggested_action(self, error: Exception) -> str:
        """
        获取错误的建议处理方案

        Args:
            error: 异常对象

        Returns:
            str: 建议的处理方案
        """
        error_message = str(error).lower()

        if isinstance(error, socket.timeout):
            return "检查网络连接，考虑增加超时时间"
        elif isinstance(error, socket.gaierror):
            return "检查域名是否正确，DNS服务器是否可用"
        elif isinstance(error, ConnectionRefusedError):
            return "检查目标服务器是否运行，端口是否正确"
        elif isinstance(error, ssl.SSLError):
            if 'certificate verify failed' in error_message:
                return "证书验证失败，可能是自签名证书或证书链问题"
            elif 'handshake failure' in error_message:
                return "TLS握手失败，检查TLS版本兼容性"
            else:
                return "TLS连接问题，检查服务器TLS配置"
        elif 'network is unreachable' in error_message:
            return "网络不可达，检查网络连接和路由"
        elif 'no route to host' in error_message:
            return "无法路由到主机，检查防火墙和网络配置"
        else:
            return "检查网络连接和服务器状态"
