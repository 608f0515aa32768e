"""
证书过期监控主流程及命令行入口
"""
import argparse
import os
import sys
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .exceptions import ConfigError, ProbeError
from .interfaces import CertificateProbeInterface, MailerInterface
from .models import CheckResult, NotificationRequest, Target, TargetOutcome
from .services.certificate_probe import CertificateProbe
from .services.config_loader import MonitorConfig, load_config
from .services.expiration_policy import ExpirationPolicy
from .services.logger import LoggerService
from .services.mailer import build_mailer
from .services.notification import NotificationDispatcher


DEFAULT_MAX_WORKERS = 10
CANCELLED = "cancelled"


class CertificateExpirationMonitor:
    """证书过期监控器主类"""

    def __init__(self, config: MonitorConfig,
                 probe: Optional[CertificateProbeInterface] = None,
                 mailer: Optional[MailerInterface] = None,
                 logger_service: Optional[LoggerService] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        初始化监控器

        Args:
            config: 运行配置
            probe: 证书探测器，为None时根据配置创建
            mailer: 邮件发送器，为None时根据smtp配置创建
            logger_service: 日志服务
            clock: 返回当前UTC时间的函数，每次运行调用一次
        """
        self.config = config
        self.logger_service = logger_service or LoggerService()
        self.probe = probe or CertificateProbe(
            timeout=config.timeout.total_seconds(),
            verify=config.verify_certificates
        )
        self.policy = ExpirationPolicy(config.expiration_warning_threshold)
        self.notification_service = NotificationDispatcher(
            mailer or build_mailer(config.smtp),
            config.smtp.from_address
        )
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        self.logger_service.log_configuration_info(config.to_log_dict())

    def execute(self, stop_event: Optional[threading.Event] = None) -> CheckResult:
        """
        执行证书过期检查

        Args:
            stop_event: 设置后尚未开始的目标记录为已取消

        Returns:
            CheckResult: 检查结果，每个配置的目标对应一条结果
        """
        start_time = datetime.now(timezone.utc)
        targets = list(self.config.targets)

        if not targets:
            self.logger_service.logger.warning("没有找到要检查的目标")
            return CheckResult(
                total_targets=0,
                successful_checks=0,
                failed_checks=0,
                expiring_targets=[],
                expired_targets=[],
                outcomes=[],
                errors=[],
                execution_time=0.0
            )

        self.logger_service.log_check_start(len(targets))

        # 同一次运行中所有目标使用同一个参考时间
        now = self.clock()
        outcomes = self._check_targets(targets, now, stop_event)
        categorized = self.policy.categorize(outcomes)

        self.logger_service.log_check_end()
        self.logger_service.logger.info(self.policy.get_summary(outcomes))

        result = CheckResult(
            total_targets=len(targets),
            successful_checks=len([o for o in outcomes if o.is_success]),
            failed_checks=len([o for o in outcomes if not o.is_success]),
            expiring_targets=categorized['warning_due'],
            expired_targets=categorized['expired'],
            outcomes=outcomes,
            errors=[f"{o.site}: {o.error}" for o in categorized['failed']],
            execution_time=(datetime.now(timezone.utc) - start_time).total_seconds()
        )

        self.logger_service.log_execution_summary()

        return result

    def check_target(self, target: Target, now: datetime) -> TargetOutcome:
        """
        检查单个目标：探测、判定、必要时通知

        Args:
            target: 目标
            now: 参考时间

        Returns:
            TargetOutcome: 检查结果
        """
        site = target.address

        try:
            snapshot = self.probe.probe(target, self.config.timeout.total_seconds())
        except ProbeError as e:
            return TargetOutcome(site=site, error=e.reason)

        decision = self.policy.evaluate(snapshot.not_after, now)
        outcome = TargetOutcome(
            site=site,
            not_after=snapshot.not_after,
            decision=decision,
            subject=snapshot.subject or None,
            issuer=snapshot.issuer or None
        )

        if decision.requires_notification:
            request = NotificationRequest(
                site=site,
                not_after=snapshot.not_after,
                recipients=tuple(self.config.emails),
                decision=decision
            )
            outcome.send_results = self.notification_service.dispatch_request(request)
            outcome.notified = any(r.success for r in outcome.send_results)
            self.logger_service.log_send_results(site, outcome.send_results)

        return outcome

    def _run_target(self, target: Target, now: datetime,
                    stop_event: Optional[threading.Event]) -> TargetOutcome:
        if stop_event is not None and stop_event.is_set():
            outcome = TargetOutcome(site=target.address, error=CANCELLED)
        else:
            try:
                outcome = self.check_target(target, now)
            except Exception as e:
                # 单个目标的意外错误不影响其他目标
                self.logger_service.log_error(target.address, e)
                outcome = TargetOutcome(site=target.address, error=f"{type(e).__name__}: {str(e)}")

        self.logger_service.log_outcome(outcome)
        return outcome

    def _check_targets(self, targets: List[Target], now: datetime,
                       stop_event: Optional[threading.Event]) -> List[TargetOutcome]:
        """
        并发检查所有目标

        每个目标写入自己的结果槽位，结果顺序与配置顺序一致。
        """
        outcomes: List[Optional[TargetOutcome]] = [None] * len(targets)
        workers = self._worker_count(len(targets))

        if workers == 1:
            for index, target in enumerate(targets):
                outcomes[index] = self._run_target(target, now, stop_event)
            return outcomes

        self.logger_service.logger.info(f"使用 {workers} 个工作线程检查 {len(targets)} 个目标")

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self._run_target, target, now, stop_event): index
                for index, target in enumerate(targets)
            }
            for future in as_completed(futures):
                outcomes[futures[future]] = future.result()

        return outcomes

    def _worker_count(self, target_count: int) -> int:
        if self.config.max_workers is not None:
            return max(1, min(self.config.max_workers, target_count))
        return max(1, min(DEFAULT_MAX_WORKERS, target_count))


def main(argv: Optional[List[str]] = None) -> int:
    """
    命令行入口

    Returns:
        int: 退出码，运行完成为0，配置错误为1
    """
    parser = argparse.ArgumentParser(
        description="Check TLS certificate expiration for configured sites and email warnings"
    )
    parser.add_argument(
        "-c", "--config",
        default=os.getenv('CERT_MONITOR_CONFIG', 'config.json'),
        help="Path to the JSON configuration file (default: config.json)"
    )
    args = parser.parse_args(argv)

    logger_service = LoggerService()

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger_service.logger.error(f"配置加载失败: {str(e)}")
        return 1

    monitor = CertificateExpirationMonitor(config, logger_service=logger_service)
    monitor.execute()
    return 0


if __name__ == '__main__':
    sys.exit(main())
