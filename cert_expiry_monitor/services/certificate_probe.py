"""
证书探测服务
"""
import ssl
import socket
import time
from typing import Optional, Union
import logging

from cryptography import x509

from ..interfaces import CertificateProbeInterface
from ..models import CertificateSnapshot, Target
from ..exceptions import ProbeError, ProbeConnectionError, NoCertificateError
from .error_handler import ProbeErrorHandler


DEFAULT_TIMEOUT = 10.0


class CertificateProbe(CertificateProbeInterface):
    """TLS证书探测器实现"""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, verify: bool = False):
        """
        初始化证书探测器

        Args:
            timeout: 单次探测的总超时时间（秒），包含连接、握手和读取证书
            verify: 是否校验对端证书信任链，默认不校验以便读取自签名或内部CA证书
        """
        self.timeout = timeout
        self.verify = verify
        self.logger = logging.getLogger(__name__)
        self.error_handler = ProbeErrorHandler()

    def probe(self, target: Union[Target, str], timeout: Optional[float] = None) -> CertificateSnapshot:
        """
        探测单个目标的叶子证书

        Args:
            target: 目标（Target 或 host[:port] 字符串）
            timeout: 总超时时间（秒），为None时使用实例默认值

        Returns:
            CertificateSnapshot: 证书快照

        Raises:
            ProbeConnectionError: 目标无效、连接失败、握手失败或超时
            NoCertificateError: 对端未提供证书
        """
        if not isinstance(target, Target):
            try:
                target = Target.parse(target)
            except ValueError as e:
                raise ProbeConnectionError(str(target), str(e)) from e

        address = target.address
        deadline = time.monotonic() + self._effective_timeout(timeout)

        try:
            der_cert = self._get_leaf_certificate(target, deadline)
        except ProbeError:
            raise
        except (OSError, ssl.SSLError, ValueError) as e:
            raise self.error_handler.to_probe_error(address, e) from e

        if not der_cert:
            raise NoCertificateError(address, "对端未提供证书")

        return self._build_snapshot(address, der_cert)

    def _effective_timeout(self, timeout: Optional[float]) -> float:
        """
        计算实际使用的超时时间

        零或负数不表示"无限等待"，回退到默认值
        """
        value = self.timeout if timeout is None else timeout
        if value is None or value <= 0:
            self.logger.warning(f"超时时间 {value} 无效，使用默认值 {DEFAULT_TIMEOUT} 秒")
            return DEFAULT_TIMEOUT
        return float(value)

    def _remaining(self, address: str, deadline: float) -> float:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ProbeConnectionError(address, "探测超时")
        return remaining

    def _create_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if not self.verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def _connect(self, target: Target, deadline: float) -> socket.socket:
        """
        依次尝试解析出的每个地址建立TCP连接

        所有地址共用同一个截止时间，每次尝试只使用剩余时间。

        Args:
            target: 目标
            deadline: time.monotonic() 截止时间

        Returns:
            socket.socket: 已连接的套接字

        Raises:
            ProbeConnectionError: 截止时间已过或没有可用地址
            OSError: 最后一个地址的连接错误
        """
        address = target.address
        last_error = None

        for family, socktype, proto, _, sockaddr in socket.getaddrinfo(
                target.host, target.port, 0, socket.SOCK_STREAM):
            sock = socket.socket(family, socktype, proto)
            try:
                sock.settimeout(self._remaining(address, deadline))
                sock.connect(sockaddr)
                return sock
            except ProbeError:
                sock.close()
                raise
            except OSError as e:
                sock.close()
                self.logger.debug(f"目标 {address} 连接 {sockaddr} 失败: {str(e)}")
                last_error = e

        if last_error is not None:
            raise last_error
        raise ProbeConnectionError(address, "没有解析到可用地址")

    def _get_leaf_certificate(self, target: Target, deadline: float) -> Optional[bytes]:
        """
        建立TLS连接并读取对端的第一张证书（DER格式）

        Args:
            target: 目标
            deadline: time.monotonic() 截止时间

        Returns:
            Optional[bytes]: 叶子证书DER数据
        """
        address = target.address
        context = self._create_context()
        server_hostname = None if target.is_ip_address else target.host

        with self._connect(target, deadline) as sock:
            sock.settimeout(self._remaining(address, deadline))
            with context.wrap_socket(sock, server_hostname=server_hostname,
                                     do_handshake_on_connect=False) as ssock:
                ssock.do_handshake()
                # 握手完成后剩余时间作为读写截止时间
                ssock.settimeout(self._remaining(address, deadline))
                return ssock.getpeercert(binary_form=True)

    def _build_snapshot(self, address: str, der_cert: bytes) -> CertificateSnapshot:
        """
        解析DER证书生成快照

        Args:
            address: 目标地址
            der_cert: DER证书数据

        Returns:
            CertificateSnapshot: 证书快照
        """
        try:
            cert = x509.load_der_x509_certificate(der_cert)
        except ValueError as e:
            raise ProbeConnectionError(address, f"无法解析证书: {str(e)}") from e

        snapshot = CertificateSnapshot(
            site=address,
            not_after=cert.not_valid_after_utc,
            subject=cert.subject.rfc4514_string(),
            issuer=cert.issuer.rfc4514_string()
        )

        self.logger.debug(f"目标 {address} 证书有效期至 {snapshot.not_after.isoformat()}")
        return snapshot
