import logging

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.http import require_GET

from utils.rate_limit import sliding_window_limit
from utils.snow_flake import ClockError, TimestampOverflowError
from .generator import get_snowflake, publish_last_timestamp

logger = logging.getLogger(__name__)


@require_GET
@sliding_window_limit(threshold=lambda: settings.IDGEN_RATE_LIMIT)
def generate(request):
    """批量生成ID，ID以字符串返回，避免前端丢失精度"""
    try:
        count = int(request.GET.get('count', 1))
    except ValueError:
        return JsonResponse({"code": 400, "msg": "count必须是整数"}, status=400)

    if not 1 <= count <= settings.IDGEN_MAX_BATCH:
        return JsonResponse(
            {"code": 400, "msg": f"count必须在1-{settings.IDGEN_MAX_BATCH}之间"}, status=400
        )

    snowflake = get_snowflake()
    try:
        ids = snowflake.generate_ids(count)
    except ClockError as e:
        logger.error("生成ID失败：%s", e)
        return JsonResponse({"code": 503, "msg": str(e), "lagged_by": e.lagged_by}, status=503)
    except TimestampOverflowError as e:
        logger.error("生成ID失败：%s", e)
        return JsonResponse({"code": 500, "msg": str(e)}, status=500)

    publish_last_timestamp(snowflake)

    return JsonResponse({"code": 200, "ids": [str(snowflake_id) for snowflake_id in ids]})


@require_GET
def parse(request, snowflake_id):
    """拆解ID中的时间戳、数据中心ID、机器ID和序列号"""
    try:
        parts = get_snowflake().parse_id(snowflake_id)
    except ValueError as e:
        return JsonResponse({"code": 400, "msg": str(e)}, status=400)

    return JsonResponse({
        "code": 200,
        "id": str(snowflake_id),
        "timestamp": parts.timestamp,
        "data_center_id": parts.data_center_id,
        "machine_id": parts.machine_id,
        "sequence": parts.sequence,
        "created_at": parts.created_at.isoformat(),
    })
