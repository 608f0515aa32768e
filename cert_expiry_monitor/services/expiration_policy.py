"""
证书过期策略服务
"""
from datetime import datetime, timedelta
from typing import Dict, List
from ..models import Decision, TargetOutcome


DEFAULT_WARNING_THRESHOLD = timedelta(hours=168)


def evaluate(not_after: datetime, now: datetime, warning_threshold: timedelta) -> Decision:
    """
    根据过期时间判定是否需要警告

    Args:
        not_after: 证书过期时间
        now: 当前参考时间
        warning_threshold: 警告阈值，零或负数表示仅在已过期时警告

    Returns:
        Decision: 判定结果
    """
    if not_after <= now:
        return Decision.EXPIRED
    if not_after - now < warning_threshold:
        return Decision.WARNING_DUE
    return Decision.OK


class ExpirationPolicy:
    """证书过期策略"""

    def __init__(self, warning_threshold: timedelta = DEFAULT_WARNING_THRESHOLD):
        """
        初始化过期策略

        Args:
            warning_threshold: 提前警告时长，默认168小时
        """
        self.warning_threshold = warning_threshold

    def evaluate(self, not_after: datetime, now: datetime) -> Decision:
        """
        判定证书状态

        Args:
            not_after: 证书过期时间
            now: 当前参考时间

        Returns:
            Decision: 判定结果
        """
        return evaluate(not_after, now, self.warning_threshold)

    def categorize(self, outcomes: List[TargetOutcome]) -> Dict[str, List[TargetOutcome]]:
        """
        对检查结果进行分类

        Args:
            outcomes: 目标检查结果列表

        Returns:
            Dict[str, List[TargetOutcome]]: 分类结果
        """
        return {
            'expired': [o for o in outcomes if o.is_success and o.decision is Decision.EXPIRED],
            'warning_due': [o for o in outcomes if o.is_success and o.decision is Decision.WARNING_DUE],
            'ok': [o for o in outcomes if o.is_success and o.decision is Decision.OK],
            'failed': [o for o in outcomes if not o.is_success]
        }

    def get_summary(self, outcomes: List[TargetOutcome]) -> str:
        """
        获取过期状态摘要

        Args:
            outcomes: 目标检查结果列表

        Returns:
            str: 摘要信息
        """
        categorized = self.categorize(outcomes)

        summary_parts = [f"总计: {len(outcomes)} 个目标"]

        if categorized['expired']:
            summary_parts.append(f"已过期: {len(categorized['expired'])} 个")

        if categorized['warning_due']:
            summary_parts.append(
                f"即将过期({self.warning_threshold}内): {len(categorized['warning_due'])} 个"
            )

        if categorized['ok']:
            summary_parts.append(f"正常: {len(categorized['ok'])} 个")

        if categorized['failed']:
            summary_parts.append(f"检查失败: {len(categorized['failed'])} 个")

        return ", ".join(summary_parts)
