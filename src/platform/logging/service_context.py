"""
Service context for log lines.

Identifies which process emitted a line when several coordinator
instances write to the same log sink.
"""

from functools import lru_cache
import os


@lru_cache(maxsize=1)
def get_service_context() -> str:
    service_name = os.getenv('SERVICE_NAME', 'seat-hold')
    deploy_env = os.getenv('DEPLOY_ENV', 'local_dev')

    # Container hostnames are unique per replica; local runs use the PID
    instance = os.getenv('HOSTNAME', '') if deploy_env != 'local_dev' else ''
    if not instance:
        instance = str(os.getpid())

    return f'{service_name}@{deploy_env}:{instance[:12]}'
