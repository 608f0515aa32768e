"""
配置加载服务
"""
import json
import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple
import logging

from ..exceptions import ConfigError
from ..models import Target
from .expiration_policy import DEFAULT_WARNING_THRESHOLD
from .mailer import DEFAULT_SMTP_PORT


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = timedelta(seconds=10)
SUPPORTED_TRANSPORTS = ('smtp', 'ses')

# 时长单位（秒）
_DURATION_UNITS = {
    'ns': 1e-9,
    'us': 1e-6,
    'µs': 1e-6,
    'μs': 1e-6,
    'ms': 1e-3,
    's': 1.0,
    'm': 60.0,
    'h': 3600.0
}
_DURATION_PART = re.compile(r'(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)')


def parse_duration(text: str) -> timedelta:
    """
    解析时长字符串，如 "168h"、"1h30m"、"10s"、"1.5h"

    Args:
        text: 时长字符串

    Returns:
        timedelta: 时长

    Raises:
        ConfigError: 格式无效
    """
    if not isinstance(text, str):
        raise ConfigError(f"时长必须是字符串: {text!r}")

    value = text.strip()
    sign = 1
    if value[:1] in ('+', '-'):
        sign = -1 if value[0] == '-' else 1
        value = value[1:]

    if value == '0':
        return timedelta(0)
    if not value:
        raise ConfigError(f"时长格式无效: {text!r}")

    seconds = 0.0
    pos = 0
    while pos < len(value):
        match = _DURATION_PART.match(value, pos)
        if not match:
            raise ConfigError(f"时长格式无效: {text!r}")
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    try:
        return timedelta(seconds=sign * seconds)
    except OverflowError as e:
        raise ConfigError(f"时长超出范围: {text!r}") from e


@dataclass(frozen=True)
class SmtpSettings:
    """邮件发送配置"""
    server: Optional[str]
    from_address: str
    password: Optional[str] = None
    port: int = DEFAULT_SMTP_PORT
    username: Optional[str] = None
    transport: str = 'smtp'
    region: Optional[str] = None


@dataclass(frozen=True)
class MonitorConfig:
    """监控运行配置（单次运行内不可变）"""
    targets: Tuple[Target, ...]
    emails: Tuple[str, ...]
    smtp: SmtpSettings
    expiration_warning_threshold: timedelta = DEFAULT_WARNING_THRESHOLD
    timeout: timedelta = DEFAULT_TIMEOUT
    max_workers: Optional[int] = None
    verify_certificates: bool = False
    source: Optional[str] = field(default=None, compare=False)

    def to_log_dict(self) -> Dict[str, Any]:
        """用于日志记录的配置信息（敏感字段由日志服务脱敏）"""
        return {
            'config_file': self.source,
            'sites': [target.address for target in self.targets],
            'emails': list(self.emails),
            'smtp_transport': self.smtp.transport,
            'smtp_server': self.smtp.server,
            'smtp_port': self.smtp.port,
            'smtp_from': self.smtp.from_address,
            'smtp_password': self.smtp.password,
            'expiration_warning_threshold': str(self.expiration_warning_threshold),
            'timeout': str(self.timeout),
            'max_workers': self.max_workers,
            'verify_certificates': self.verify_certificates
        }


def load_config(path: str) -> MonitorConfig:
    """
    从JSON文件加载配置

    Args:
        path: 配置文件路径

    Returns:
        MonitorConfig: 配置

    Raises:
        ConfigError: 文件不可读、JSON格式错误或字段无效
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"配置文件不存在: {path}") from e
    except OSError as e:
        raise ConfigError(f"无法读取配置文件 {path}: {str(e)}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"配置文件JSON格式错误 {path}: {str(e)}") from e

    config = parse_config(data, source=path)
    logger.info(f"成功加载配置文件 {path}，共 {len(config.targets)} 个目标")
    return config


def parse_config(data: Any, source: Optional[str] = None) -> MonitorConfig:
    """
    校验并转换配置对象

    Args:
        data: JSON解析后的对象
        source: 配置来源（用于日志）

    Returns:
        MonitorConfig: 配置
    """
    if not isinstance(data, dict):
        raise ConfigError("配置根节点必须是JSON对象")

    targets = _parse_sites(data.get('sites'))
    emails = _parse_emails(data.get('emails', []))
    smtp = _parse_smtp(data.get('smtp'))

    threshold = DEFAULT_WARNING_THRESHOLD
    if data.get('expirationWarningThreshold') is not None:
        threshold = parse_duration(data['expirationWarningThreshold'])

    timeout = DEFAULT_TIMEOUT
    if data.get('timeout') is not None:
        timeout = parse_duration(data['timeout'])
        if timeout < timedelta(0):
            raise ConfigError(f"timeout 不能为负数: {data['timeout']!r}")
        if timeout == timedelta(0):
            logger.warning(f"timeout 为0，使用默认值 {DEFAULT_TIMEOUT}")
            timeout = DEFAULT_TIMEOUT

    max_workers = data.get('maxWorkers')
    if max_workers is not None:
        if isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers < 1:
            raise ConfigError(f"maxWorkers 必须是正整数: {max_workers!r}")

    verify = data.get('verifyCertificates', False)
    if not isinstance(verify, bool):
        raise ConfigError(f"verifyCertificates 必须是布尔值: {verify!r}")

    if not targets:
        logger.warning("配置中没有要检查的站点")

    return MonitorConfig(
        targets=targets,
        emails=emails,
        smtp=smtp,
        expiration_warning_threshold=threshold,
        timeout=timeout,
        max_workers=max_workers,
        verify_certificates=verify,
        source=source
    )


def _parse_sites(sites: Any) -> Tuple[Target, ...]:
    if not isinstance(sites, list):
        raise ConfigError("sites 必须是字符串数组")

    targets: List[Target] = []
    for site in sites:
        if not isinstance(site, str):
            raise ConfigError(f"站点必须是字符串: {site!r}")
        try:
            targets.append(Target.parse(site))
        except ValueError as e:
            raise ConfigError(f"站点格式无效 {site!r}: {str(e)}") from e

    return tuple(targets)


def _parse_emails(emails: Any) -> Tuple[str, ...]:
    if not isinstance(emails, list):
        raise ConfigError("emails 必须是字符串数组")

    result = []
    for email in emails:
        if not isinstance(email, str) or '@' not in email:
            raise ConfigError(f"邮箱地址无效: {email!r}")
        result.append(email.strip())

    return tuple(result)


def _parse_smtp(smtp: Any) -> SmtpSettings:
    if not isinstance(smtp, dict):
        raise ConfigError("smtp 必须是JSON对象")

    transport = smtp.get('transport', 'smtp')
    if transport not in SUPPORTED_TRANSPORTS:
        raise ConfigError(f"不支持的邮件发送方式: {transport!r}")

    from_address = smtp.get('from')
    if not isinstance(from_address, str) or not from_address:
        raise ConfigError("smtp.from 未配置")

    server = smtp.get('server')
    if transport == 'smtp' and (not isinstance(server, str) or not server):
        raise ConfigError("smtp.server 未配置")

    port = smtp.get('port', DEFAULT_SMTP_PORT)
    if isinstance(port, bool) or not isinstance(port, int) or not 1 <= port <= 65535:
        raise ConfigError(f"smtp.port 无效: {port!r}")

    region = smtp.get('region')
    if transport == 'ses' and (not isinstance(region, str) or not region):
        raise ConfigError("使用 ses 发送时必须配置 smtp.region")

    password = smtp.get('password')
    if password is not None and not isinstance(password, str):
        raise ConfigError("smtp.password 必须是字符串")

    return SmtpSettings(
        server=server,
        from_address=from_address,
        password=password,
        port=port,
        username=smtp.get('username'),
        transport=transport,
        region=region
    )
