"""
Lambda处理器测试
"""
import json
import os
from unittest.mock import patch, MagicMock
from datetime import datetime, timezone, timedelta

from cert_expiry_monitor.lambda_handler import lambda_handler
from cert_expiry_monitor.models import CertificateSnapshot
from cert_expiry_monitor.exceptions import ProbeConnectionError


def write_config(tmp_path):
    data = {
        'sites': ["example.com", "down.example.com"],
        'emails': ["ops@example.com"],
        'smtp': {'server': "smtp.example.com", 'from': "monitor@example.com", 'password': "secret"},
        'expirationWarningThreshold': "168h",
        'maxWorkers': 1
    }
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data), encoding='utf-8')
    return str(path)


def fake_probe(target, timeout=None):
    if target.host == "down.example.com":
        raise ProbeConnectionError(target.address, "refused")
    return CertificateSnapshot(site=target.address,
                               not_after=datetime.now(timezone.utc) + timedelta(hours=50))


class TestLambdaHandler:
    """Lambda处理器测试类"""

    @patch('cert_expiry_monitor.monitor.build_mailer')
    @patch('cert_expiry_monitor.monitor.CertificateProbe')
    def test_success_response(self, mock_probe_class, mock_build_mailer, tmp_path):
        """测试正常执行的响应"""
        mock_probe_class.return_value.probe.side_effect = fake_probe
        mock_build_mailer.return_value.send.return_value = "<id@test>"

        response = lambda_handler({'config_path': write_config(tmp_path)}, MagicMock())

        assert response['statusCode'] == 200
        body = response['body']
        assert body['summary']['total_targets'] == 2
        assert body['summary']['successful_checks'] == 1
        assert body['summary']['failed_checks'] == 1
        assert body['summary']['expiring_certificates'] == 1
        assert [o['site'] for o in body['outcomes']] == ["example.com:443", "down.example.com:443"]
        assert body['outcomes'][0]['notified'] is True
        assert body['outcomes'][1]['outcome'] == 'error'
        assert body['errors'] == ["down.example.com:443: refused"]
        assert 'timestamp' in body
        mock_build_mailer.return_value.send.assert_called_once()

    @patch('cert_expiry_monitor.monitor.build_mailer')
    @patch('cert_expiry_monitor.monitor.CertificateProbe')
    def test_config_path_from_environment(self, mock_probe_class, mock_build_mailer, tmp_path):
        """测试从环境变量读取配置路径"""
        mock_probe_class.return_value.probe.side_effect = fake_probe

        with patch.dict(os.environ, {'CERT_MONITOR_CONFIG': write_config(tmp_path)}):
            response = lambda_handler({}, MagicMock())

        assert response['statusCode'] == 200

    def test_config_error_response(self, tmp_path):
        """测试配置错误时返回500"""
        response = lambda_handler({'config_path': str(tmp_path / "missing.json")}, MagicMock())

        assert response['statusCode'] == 500
        assert "配置文件不存在" in response['body']['error']
