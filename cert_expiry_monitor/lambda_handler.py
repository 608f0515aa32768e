"""
AWS Lambda函数入口点
"""
import os
from typing import Dict, Any
from datetime import datetime, timezone

from .exceptions import ConfigError
from .monitor import CertificateExpirationMonitor
from .services.config_loader import load_config
from .services.logger import LoggerService


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda函数入口点

    Args:
        event: EventBridge触发事件，可通过 config_path 指定配置文件
        context: Lambda运行时上下文

    Returns:
        dict: 执行结果和每个目标的观测记录
    """
    logger_service = LoggerService()
    config_path = (event or {}).get('config_path') or os.getenv('CERT_MONITOR_CONFIG', 'config.json')

    try:
        config = load_config(config_path)
    except ConfigError as e:
        logger_service.logger.error(f"配置加载失败: {str(e)}")
        return {
            'statusCode': 500,
            'body': {
                'message': 'Certificate expiration monitor failed to load configuration',
                'error': str(e),
                'timestamp': datetime.now(timezone.utc).isoformat()
            }
        }

    monitor = CertificateExpirationMonitor(config, logger_service=logger_service)
    result = monitor.execute()

    return {
        'statusCode': 200,
        'body': {
            'message': 'Certificate expiration monitor executed successfully',
            'summary': {
                'total_targets': result.total_targets,
                'successful_checks': result.successful_checks,
                'failed_checks': result.failed_checks,
                'expired_certificates': len(result.expired_targets),
                'expiring_certificates': len(result.expiring_targets),
                'execution_time_seconds': result.execution_time
            },
            'outcomes': [outcome.to_record() for outcome in result.outcomes],
            'errors': result.errors[:5],  # 只返回前5个错误
            'timestamp': datetime.now(timezone.utc).isoformat()
        }
    }
