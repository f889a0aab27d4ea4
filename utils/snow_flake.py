import logging
import threading
import time
from collections import namedtuple
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)

# 默认起始时间戳(毫秒)：2021-08-26 12:20:00 UTC
DEFAULT_EPOCH = 1629980400000

# 除符号位外可用的总位数
ID_BITS = 63


class SnowflakeError(Exception):
    """雪花算法相关异常的基类"""


class ConfigError(SnowflakeError, ValueError):
    """构造参数超出范围（数据中心ID、机器ID、位宽或起始时间戳）"""

    def __init__(self, field: str, value: int, max_value: int):
        self.field = field
        self.value = value
        self.max_value = max_value
        super().__init__(f"{field}必须在0-{max_value}之间，当前值为{value}")


class ClockError(SnowflakeError, RuntimeError):
    """时钟回拨：当前时间戳小于上一次生成ID的时间戳"""

    def __init__(self, lagged_by: int, last_timestamp: int):
        self.lagged_by = lagged_by
        self.last_timestamp = last_timestamp
        super().__init__(f"时钟回拨异常：当前时间比上一次生成ID的时间落后{lagged_by}毫秒")


class TimestampOverflowError(SnowflakeError, OverflowError):
    """时间戳超出时间戳字段可表示的范围"""

    def __init__(self, timestamp: int, max_timestamp: int):
        self.timestamp = timestamp
        self.max_timestamp = max_timestamp
        super().__init__(f"时间戳溢出：{timestamp} > {max_timestamp}，请更换起始时间戳或调整位宽")


SnowflakeParts = namedtuple(
    "SnowflakeParts",
    ["timestamp", "data_center_id", "machine_id", "sequence", "created_at"],
)


def current_millis() -> int:
    return int(time.time() * 1000)


class Snowflake:
    """
    雪花算法实现：生成64位分布式唯一ID
    结构：1位符号位 + 时间戳 + 数据中心ID + 机器ID + 序列号
    默认位宽：41位时间戳 + 5位数据中心ID + 5位机器ID + 12位序列号

    每个实例独立持有状态，同一实例的generate_id由一把互斥锁保护，
    可以被多个线程并发调用。
    """

    def __init__(self, data_center_id: int, machine_id: int, epoch: int = DEFAULT_EPOCH,
                 data_center_bits: int = 5, machine_bits: int = 5, sequence_bits: int = 12,
                 clock=None):
        """
        初始化雪花算法生成器
        :param data_center_id: 数据中心ID (0 ~ 2^data_center_bits-1)
        :param machine_id: 机器ID (0 ~ 2^machine_bits-1)
        :param epoch: 起始时间戳(毫秒)，必须早于当前时间
        :param data_center_bits: 数据中心ID位数
        :param machine_bits: 机器ID位数
        :param sequence_bits: 序列号位数
        :param clock: 返回当前毫秒时间戳的可调用对象，默认使用系统时间
        """
        self._clock = clock or current_millis

        # 校验位宽，至少保留1位给时间戳
        for field, bits in (("data_center_bits", data_center_bits),
                            ("machine_bits", machine_bits),
                            ("sequence_bits", sequence_bits)):
            if bits < 0:
                raise ConfigError(field, bits, ID_BITS - 1)
        total_bits = data_center_bits + machine_bits + sequence_bits
        if total_bits > ID_BITS - 1:
            raise ConfigError("data_center_bits+machine_bits+sequence_bits", total_bits, ID_BITS - 1)

        self.data_center_bits = data_center_bits
        self.machine_bits = machine_bits
        self.sequence_bits = sequence_bits
        self.timestamp_bits = ID_BITS - total_bits

        # 最大取值计算
        self.max_data_center_id = (1 << data_center_bits) - 1
        self.max_machine_id = (1 << machine_bits) - 1
        self.max_sequence = (1 << sequence_bits) - 1
        self.max_timestamp = (1 << self.timestamp_bits) - 1

        # 位偏移量
        self.machine_shift = sequence_bits
        self.data_center_shift = sequence_bits + machine_bits
        self.timestamp_shift = sequence_bits + machine_bits + data_center_bits

        # 校验数据中心ID和机器ID范围
        if not 0 <= data_center_id <= self.max_data_center_id:
            raise ConfigError("data_center_id", data_center_id, self.max_data_center_id)
        if not 0 <= machine_id <= self.max_machine_id:
            raise ConfigError("machine_id", machine_id, self.max_machine_id)

        now = self._clock()
        if not 0 <= epoch <= now:
            raise ConfigError("epoch", epoch, now)

        self.data_center_id = data_center_id
        self.machine_id = machine_id
        self.epoch = epoch

        # 状态变量，0表示尚未生成过ID
        self._last_timestamp = 0
        self._sequence = 0
        self._lock = threading.Lock()

    def __repr__(self):
        return (f"<Snowflake data_center_id={self.data_center_id} "
                f"machine_id={self.machine_id} epoch={self.epoch}>")

    @property
    def last_timestamp(self) -> int:
        """上一次生成ID使用的时间戳（相对起始时间戳的毫秒数）"""
        with self._lock:
            return self._last_timestamp

    @property
    def sequence(self) -> int:
        with self._lock:
            return self._sequence

    def _get_current_timestamp(self) -> int:
        """获取相对起始时间戳的当前毫秒数"""
        return self._clock() - self.epoch

    def _wait_next_millis(self, last_timestamp: int) -> int:
        """忙等待到下一毫秒，不让出CPU"""
        timestamp = self._get_current_timestamp()
        while timestamp <= last_timestamp:
            timestamp = self._get_current_timestamp()
        return timestamp

    def generate_id(self) -> int:
        """生成唯一ID"""
        with self._lock:
            timestamp = self._get_current_timestamp()

            # 时钟回拨直接报错，状态保持不变
            if timestamp < self._last_timestamp:
                lagged_by = self._last_timestamp - timestamp
                logger.warning("时钟回拨 %d 毫秒，拒绝生成ID（%r）", lagged_by, self)
                raise ClockError(lagged_by, self._last_timestamp)

            sequence = 0
            if timestamp == self._last_timestamp:
                # 同一毫秒内，序列号自增
                sequence = (self._sequence + 1) & self.max_sequence
                if sequence == 0:
                    # 序列号用尽，等待到下一毫秒
                    logger.debug("序列号用尽，等待下一毫秒（last_timestamp=%d）", self._last_timestamp)
                    timestamp = self._wait_next_millis(self._last_timestamp)

            if timestamp > self.max_timestamp:
                raise TimestampOverflowError(timestamp, self.max_timestamp)

            self._sequence = sequence
            self._last_timestamp = timestamp

            # 组合ID各部分（位运算）
            return (timestamp << self.timestamp_shift) \
                | (self.data_center_id << self.data_center_shift) \
                | (self.machine_id << self.machine_shift) \
                | sequence

    def generate_ids(self, count: int) -> list:
        """批量生成count个ID，按生成顺序递增"""
        if count < 1:
            raise ValueError(f"count必须大于0，当前值为{count}")
        return [self.generate_id() for _ in range(count)]

    def parse_id(self, snowflake_id: int) -> SnowflakeParts:
        """按当前实例的位宽拆解ID"""
        if not 0 <= snowflake_id < (1 << ID_BITS):
            raise ValueError(f"ID超出63位范围：{snowflake_id}")

        timestamp = snowflake_id >> self.timestamp_shift
        data_center_id = (snowflake_id >> self.data_center_shift) & self.max_data_center_id
        machine_id = (snowflake_id >> self.machine_shift) & self.max_machine_id
        sequence = snowflake_id & self.max_sequence
        created_at = datetime.fromtimestamp(0, tz=timezone.utc) \
            + timedelta(milliseconds=self.epoch + timestamp)
        return SnowflakeParts(timestamp, data_center_id, machine_id, sequence, created_at)

    def clock_lag(self) -> int:
        """当前时钟落后于上一次生成ID时间戳的毫秒数，没有回拨时返回0"""
        with self._lock:
            return max(0, self._last_timestamp - self._get_current_timestamp())
