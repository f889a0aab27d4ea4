import logging
import time
from functools import wraps
from uuid import uuid4

import django_redis
from django.http import JsonResponse
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

redis_client = django_redis.get_redis_connection("default")


def get_client_ip(request):
    """优先使用代理转发的IP作为客户端标识"""
    forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def sliding_window_limit(threshold, window_ms=1000):
    """
    滑动窗口限流装饰器
    使用ZSet记录请求，成员唯一、分值为请求时间戳，统计最近window_ms毫秒内的请求数
    :param threshold: 窗口内最大允许的请求数，可以传入无参可调用对象以便每次请求时读取
    :param window_ms: 窗口长度(毫秒)
    """

    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            limit = threshold() if callable(threshold) else threshold
            key = f"idgen:limit:{get_client_ip(request)}:{request.path}"

            # 当前时间戳（毫秒）
            current_ts = int(time.time() * 1000)
            # 窗口起始时间
            window_start_ts = current_ts - window_ms

            try:
                # 使用Redis管道确保操作原子性
                with redis_client.pipeline() as pipe:
                    # 同一毫秒的多个请求各占一个成员
                    pipe.zadd(key, {f"{current_ts}:{uuid4().hex}": current_ts})
                    # 移除窗口之外的记录
                    pipe.zremrangebyscore(key, 0, window_start_ts)
                    # 设置键过期时间，避免内存泄漏
                    pipe.expire(key, max(1, window_ms * 3 // 1000))
                    pipe.zcard(key)

                    results = pipe.execute()
                    current_count = results[-1]
            except RedisError as e:
                logger.exception("限流检查失败")
                return JsonResponse({"code": 500, "msg": f"系统繁忙，请稍后再试:{e}"}, status=500)

            if current_count > limit:
                return JsonResponse({"code": 429, "msg": "请求过于频繁，请稍后再试"}, status=429)

            return view_func(request, *args, **kwargs)
        return wrapper
    return decorator
