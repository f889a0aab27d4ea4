import logging

from celery import shared_task
from django.conf import settings

from utils.snow_flake import current_millis
from .generator import ROLE_WORKER, get_published_last_timestamp, get_snowflake

logger = logging.getLogger(__name__)


@shared_task
def check_clock_drift():
    """
    定时检查本机时钟是否落后于web进程上一次生成ID的时间
    web进程每次生成ID后把时间戳写入缓存，这里用worker所在机器的时钟与之比较，
    时钟落后时web进程生成ID会抛出ClockError，这里提前告警
    """
    conf = settings.SNOWFLAKE
    last_timestamp = get_published_last_timestamp(conf['DATA_CENTER_ID'], conf['MACHINE_ID'])
    if last_timestamp is None:
        return {"message": "web进程尚未生成ID", "last_timestamp": None, "lagged_by": 0}

    lagged_by = max(0, last_timestamp - current_millis())
    if lagged_by > 0:
        logger.warning("检测到时钟回拨 %d 毫秒，last_timestamp=%d", lagged_by, last_timestamp)
        message = "检测到时钟回拨"
    else:
        message = "时钟正常"

    return {
        "message": message,
        "last_timestamp": last_timestamp,
        "lagged_by": lagged_by,
    }


@shared_task
def generate_id_batch(count=1):
    """在worker进程中批量生成ID，使用worker专属的机器ID"""
    return get_snowflake(ROLE_WORKER).generate_ids(count)
