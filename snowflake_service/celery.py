import os

from celery import Celery
from celery.signals import worker_process_init
from celery.utils.log import current_process_index

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'snowflake_service.settings')

app = Celery('snowflake_service')

# Celery配置统一放在Django settings中，以CELERY_为前缀
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

app.conf.beat_schedule = {
    # 用worker机器时钟检查web进程发布的时间戳
    'check-clock-drift-every-10-seconds': {
        'task': 'idgen.tasks.check_clock_drift',
        'schedule': 10.0,
    },
}


@worker_process_init.connect
def configure_worker_snowflake(**kwargs):
    """每个prefork子进程按进程池序号使用独立的机器ID"""
    from idgen.generator import ROLE_WORKER, configure_snowflake

    configure_snowflake(ROLE_WORKER, current_process_index(base=0) or 0)
