"""
进程内共享的雪花算法生成器，按Django配置延迟创建

同一个(数据中心ID, 机器ID)只能由一个进程使用，按进程角色分配机器ID：
- web进程使用 SNOWFLAKE['MACHINE_ID']
- Celery 子进程使用 SNOWFLAKE['WORKER_MACHINE_ID_BASE'] + 进程池序号
- 管理命令使用 SNOWFLAKE['CLI_MACHINE_ID']
"""
import logging
import threading

from django.conf import settings
from django.core.cache import cache
from django.core.exceptions import ImproperlyConfigured
from django.core.signals import setting_changed
from django.dispatch import receiver

from utils.snow_flake import Snowflake

logger = logging.getLogger(__name__)

ROLE_WEB = 'web'
ROLE_WORKER = 'worker'
ROLE_CLI = 'cli'

_snowflakes = {}
_lock = threading.Lock()


def last_timestamp_key(data_center_id: int, machine_id: int) -> str:
    return f"idgen:last_timestamp:{data_center_id}:{machine_id}"


def build_snowflake(conf: dict, machine_id: int = None) -> Snowflake:
    """根据SNOWFLAKE配置字典创建生成器，machine_id用于覆盖配置中的机器ID"""
    return Snowflake(
        data_center_id=conf['DATA_CENTER_ID'],
        machine_id=conf['MACHINE_ID'] if machine_id is None else machine_id,
        epoch=conf['EPOCH'],
        data_center_bits=conf.get('DATA_CENTER_BITS', 5),
        machine_bits=conf.get('MACHINE_BITS', 5),
        sequence_bits=conf.get('SEQUENCE_BITS', 12),
    )


def machine_id_for(role: str, index: int = 0) -> int:
    """
    按进程角色计算机器ID
    :param role: ROLE_WEB / ROLE_WORKER / ROLE_CLI
    :param index: Celery进程池序号，仅ROLE_WORKER使用
    """
    conf = settings.SNOWFLAKE
    web_machine_id = conf['MACHINE_ID']
    if role == ROLE_WEB:
        return web_machine_id

    if role == ROLE_WORKER:
        base = conf.get('WORKER_MACHINE_ID_BASE')
        if base is None:
            raise ImproperlyConfigured("Celery worker需要配置SNOWFLAKE_WORKER_MACHINE_ID_BASE")
        machine_id = base + index
    elif role == ROLE_CLI:
        machine_id = conf.get('CLI_MACHINE_ID')
        if machine_id is None:
            raise ImproperlyConfigured("管理命令需要配置SNOWFLAKE_CLI_MACHINE_ID")
    else:
        raise ValueError(f"未知的进程角色：{role}")

    if machine_id == web_machine_id:
        raise ImproperlyConfigured(f"{role}进程的机器ID {machine_id} 与web进程重复")
    return machine_id


def _build_for_role(role, index=0):
    snowflake = build_snowflake(settings.SNOWFLAKE, machine_id_for(role, index))
    _snowflakes[role] = snowflake
    logger.info("雪花算法生成器初始化完成（%s）：%r", role, snowflake)
    return snowflake


def configure_snowflake(role: str, index: int = 0) -> Snowflake:
    """按角色创建当前进程的生成器，替换该角色已有的生成器"""
    with _lock:
        return _build_for_role(role, index)


def get_snowflake(role: str = ROLE_WEB) -> Snowflake:
    """获取当前进程该角色的生成器，首次调用时创建"""
    with _lock:
        snowflake = _snowflakes.get(role)
        if snowflake is None:
            snowflake = _build_for_role(role)
        return snowflake


def reset_snowflake():
    """丢弃当前进程的所有生成器，下次调用get_snowflake时按最新配置重新创建"""
    with _lock:
        _snowflakes.clear()


def publish_last_timestamp(snowflake: Snowflake):
    """把上一次生成ID的绝对毫秒时间戳写入缓存，供时钟检查任务读取"""
    cache.set(
        last_timestamp_key(snowflake.data_center_id, snowflake.machine_id),
        snowflake.epoch + snowflake.last_timestamp,
        timeout=None,
    )


def get_published_last_timestamp(data_center_id: int, machine_id: int):
    return cache.get(last_timestamp_key(data_center_id, machine_id))


@receiver(setting_changed)
def _on_setting_changed(setting, **kwargs):
    if setting == 'SNOWFLAKE':
        reset_snowflake()
