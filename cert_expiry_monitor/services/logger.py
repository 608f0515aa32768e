"""
日志服务
"""
import os
import json
import logging
import threading
import traceback
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional
from ..interfaces import LoggerServiceInterface
from ..models import Decision, SendResult, TargetOutcome


class LoggerService(LoggerServiceInterface):
    """日志服务实现"""

    def __init__(self, logger_name: str = "cert_expiry_monitor", log_level: Optional[str] = None):
        """
        初始化日志服务

        Args:
            logger_name: 日志器名称
            log_level: 日志级别，如果为None则从环境变量读取
        """
        self.logger_name = logger_name
        self.log_level = log_level or os.getenv('LOG_LEVEL', 'INFO')

        # 配置日志器
        self.logger = logging.getLogger(logger_name)
        self._configure_logger()

        # 多个工作线程同时写入统计
        self._lock = threading.Lock()
        self.execution_stats = self._empty_stats()

    def _empty_stats(self) -> Dict[str, Any]:
        return {
            'start_time': None,
            'end_time': None,
            'total_targets': 0,
            'successful_checks': 0,
            'failed_checks': 0,
            'notifications_sent': 0,
            'notifications_failed': 0,
            'errors': []
        }

    def _configure_logger(self):
        """配置日志器"""
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        self.logger.setLevel(level)

        # 避免重复添加处理器
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(level)

            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)

            self.logger.addHandler(handler)

        self.logger.propagate = False

    def log_check_start(self, target_count: int):
        """
        记录检查开始

        Args:
            target_count: 要检查的目标数量
        """
        with self._lock:
            self.execution_stats['start_time'] = datetime.now(timezone.utc)
            self.execution_stats['total_targets'] = target_count

        self.logger.info(f"开始证书过期检查，共 {target_count} 个目标")
        self.logger.info(f"检查开始时间: {self.execution_stats['start_time'].isoformat()}")

    def log_outcome(self, outcome: TargetOutcome):
        """
        输出单个目标的结构化观测记录

        Args:
            outcome: 目标检查结果
        """
        record = outcome.to_record()
        message = json.dumps(record, ensure_ascii=False)

        with self._lock:
            if outcome.is_success:
                self.execution_stats['successful_checks'] += 1
            else:
                self.execution_stats['failed_checks'] += 1
                self.execution_stats['errors'].append({
                    'site': outcome.site,
                    'error_message': outcome.error,
                    'timestamp': datetime.now(timezone.utc).isoformat()
                })

        if not outcome.is_success:
            self.logger.error(f"证书检查失败 {message}")
        elif outcome.decision is Decision.EXPIRED:
            self.logger.warning(f"证书已过期 {message}")
        elif outcome.decision is Decision.WARNING_DUE:
            self.logger.warning(f"证书即将过期 {message}")
        else:
            self.logger.info(f"证书正常 {message}")

    def log_send_results(self, site: str, results: List[SendResult]):
        """
        记录通知发送状态

        Args:
            site: 站点标识
            results: 每个收件人的发送结果
        """
        sent = len([r for r in results if r.success])
        failed = len(results) - sent

        with self._lock:
            self.execution_stats['notifications_sent'] += sent
            self.execution_stats['notifications_failed'] += failed

        if failed:
            self.logger.error(f"站点 {site} 通知发送完成，成功 {sent} 个，失败 {failed} 个")
        else:
            self.logger.info(f"站点 {site} 通知发送成功，收件人数量: {sent}")

    def log_error(self, site: str, error: Exception):
        """
        记录未预期的错误

        Args:
            site: 站点标识
            error: 异常对象
        """
        self.logger.error(f"目标 {site} 检查时发生错误: {type(error).__name__}: {str(error)}")
        self.logger.debug(f"目标 {site} 错误堆栈跟踪:\n{traceback.format_exc()}")

    def log_check_end(self):
        """记录检查结束"""
        with self._lock:
            self.execution_stats['end_time'] = datetime.now(timezone.utc)

        summary = self.get_execution_summary()

        self.logger.info("证书过期检查完成")
        self.logger.info(f"总执行时间: {summary['duration_seconds']:.2f} 秒")
        self.logger.info(
            f"检查统计: 总计 {summary['total_targets']} 个目标, "
            f"成功 {summary['successful_checks']} 个, "
            f"失败 {summary['failed_checks']} 个"
        )

    def log_configuration_info(self, config: Dict[str, Any]):
        """
        记录配置信息

        Args:
            config: 配置信息字典
        """
        safe_config = self._sanitize_config(config)

        self.logger.info("系统配置信息:")
        for key, value in safe_config.items():
            self.logger.info(f"  {key}: {value}")

    def _sanitize_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        清理配置信息中的敏感数据

        Args:
            config: 原始配置

        Returns:
            Dict[str, Any]: 清理后的配置
        """
        safe_config = {}
        for key, value in config.items():
            key_lower = key.lower()

            is_sensitive = (
                key_lower in ('password', 'secret', 'token', 'key') or
                key_lower.endswith('_key') or
                key_lower.endswith('_secret') or
                key_lower.endswith('_password') or
                key_lower.endswith('_token')
            )

            if is_sensitive and isinstance(value, str) and value:
                safe_config[key] = value[:3] + "***" if len(value) > 3 else "***"
            else:
                safe_config[key] = value

        return safe_config

    def get_execution_summary(self) -> Dict[str, Any]:
        """
        获取执行摘要

        Returns:
            Dict[str, Any]: 执行摘要信息
        """
        with self._lock:
            stats = dict(self.execution_stats)
            errors = list(self.execution_stats['errors'])

        duration = 0
        if stats['start_time'] and stats['end_time']:
            duration = (stats['end_time'] - stats['start_time']).total_seconds()

        return {
            'start_time': stats['start_time'].isoformat() if stats['start_time'] else None,
            'end_time': stats['end_time'].isoformat() if stats['end_time'] else None,
            'duration_seconds': duration,
            'total_targets': stats['total_targets'],
            'successful_checks': stats['successful_checks'],
            'failed_checks': stats['failed_checks'],
            'success_rate': (
                stats['successful_checks'] / stats['total_targets']
                if stats['total_targets'] > 0 else 0
            ),
            'notifications_sent': stats['notifications_sent'],
            'notifications_failed': stats['notifications_failed'],
            'error_count': len(errors),
            'errors': errors
        }

    def log_execution_summary(self):
        """记录执行摘要"""
        summary = self.get_execution_summary()

        self.logger.info("=" * 50)
        self.logger.info("执行摘要")
        self.logger.info("=" * 50)
        self.logger.info(f"执行时长: {summary['duration_seconds']:.2f} 秒")
        self.logger.info(f"总目标数: {summary['total_targets']}")
        self.logger.info(f"成功检查: {summary['successful_checks']}")
        self.logger.info(f"失败检查: {summary['failed_checks']}")
        self.logger.info(f"成功率: {summary['success_rate']:.1%}")
        self.logger.info(
            f"通知发送: 成功 {summary['notifications_sent']} 封, 失败 {summary['notifications_failed']} 封"
        )

        if summary['errors']:
            self.logger.info(f"错误数量: {summary['error_count']}")
            for i, error in enumerate(summary['errors'][:5], 1):  # 只显示前5个错误
                self.logger.info(f"  错误 {i}: {error['site']} - {error['error_message']}")

            if len(summary['errors']) > 5:
                self.logger.info(f"  ... 还有 {len(summary['errors']) - 5} 个错误")

        self.logger.info("=" * 50)

    def reset_stats(self):
        """重置执行统计"""
        with self._lock:
            self.execution_stats = self._empty_stats()
