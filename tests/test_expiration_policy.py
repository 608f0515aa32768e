"""
证书过期策略测试
"""
import pytest
from datetime import datetime, timezone, timedelta

from cert_expiry_monitor.services.expiration_policy import (
    ExpirationPolicy,
    evaluate,
    DEFAULT_WARNING_THRESHOLD
)
from cert_expiry_monitor.models import Decision, TargetOutcome


NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)
WEEK = timedelta(hours=168)


class TestEvaluate:
    """过期判定函数测试类"""

    @pytest.mark.parametrize("offset", [timedelta(0), -timedelta(seconds=1), -timedelta(hours=1), -timedelta(days=400)])
    def test_expired_when_not_after_not_in_future(self, offset):
        """测试 notAfter <= now 时判定为已过期"""
        assert evaluate(NOW + offset, NOW, WEEK) is Decision.EXPIRED

    @pytest.mark.parametrize("offset", [timedelta(seconds=1), timedelta(hours=50), WEEK - timedelta(seconds=1)])
    def test_warning_due_inside_threshold(self, offset):
        """测试警告期内判定为即将过期"""
        assert evaluate(NOW + offset, NOW, WEEK) is Decision.WARNING_DUE

    @pytest.mark.parametrize("offset", [WEEK, WEEK + timedelta(seconds=1), timedelta(hours=200), timedelta(days=365)])
    def test_ok_outside_threshold(self, offset):
        """测试超出警告期判定为正常（边界值为正常）"""
        assert evaluate(NOW + offset, NOW, WEEK) is Decision.OK

    @pytest.mark.parametrize("threshold", [timedelta(0), -timedelta(hours=1)])
    def test_non_positive_threshold_warns_only_when_expired(self, threshold):
        """测试零或负阈值只在已过期时警告"""
        assert evaluate(NOW + timedelta(seconds=1), NOW, threshold) is Decision.OK
        assert evaluate(NOW, NOW, threshold) is Decision.EXPIRED
        assert evaluate(NOW - timedelta(hours=1), NOW, threshold) is Decision.EXPIRED

    def test_deterministic(self):
        """测试相同输入得到相同结果"""
        not_after = NOW + timedelta(hours=50)
        results = {evaluate(not_after, NOW, WEEK) for _ in range(10)}
        assert results == {Decision.WARNING_DUE}


class TestExpirationPolicy:
    """过期策略测试类"""

    def setup_method(self):
        """测试前准备"""
        self.policy = ExpirationPolicy(warning_threshold=WEEK)

    def test_default_threshold(self):
        """测试默认阈值为168小时"""
        assert ExpirationPolicy().warning_threshold == DEFAULT_WARNING_THRESHOLD == WEEK

    def test_evaluate(self):
        """测试策略判定"""
        assert self.policy.evaluate(NOW + timedelta(hours=200), NOW) is Decision.OK
        assert self.policy.evaluate(NOW + timedelta(hours=50), NOW) is Decision.WARNING_DUE
        assert self.policy.evaluate(NOW - timedelta(hours=1), NOW) is Decision.EXPIRED

    def _outcomes(self):
        return [
            TargetOutcome(site="ok.com:443", not_after=NOW + timedelta(days=60), decision=Decision.OK),
            TargetOutcome(site="soon.com:443", not_after=NOW + timedelta(hours=50), decision=Decision.WARNING_DUE),
            TargetOutcome(site="old.com:443", not_after=NOW - timedelta(hours=1), decision=Decision.EXPIRED),
            TargetOutcome(site="down.com:443", error="refused")
        ]

    def test_categorize(self):
        """测试结果分类"""
        categorized = self.policy.categorize(self._outcomes())

        assert [o.site for o in categorized['ok']] == ["ok.com:443"]
        assert [o.site for o in categorized['warning_due']] == ["soon.com:443"]
        assert [o.site for o in categorized['expired']] == ["old.com:443"]
        assert [o.site for o in categorized['failed']] == ["down.com:443"]

    def test_get_summary(self):
        """测试摘要信息"""
        summary = self.policy.get_summary(self._outcomes())

        assert "总计: 4 个目标" in summary
        assert "已过期: 1 个" in summary
        assert "正常: 1 个" in summary
        assert "检查失败: 1 个" in summary
