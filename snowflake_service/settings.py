import os

# 雪花算法默认起始时间戳(毫秒)：2021-08-26 12:20:00 UTC
DEFAULT_SNOWFLAKE_EPOCH = 1629980400000

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'snowflake-service-insecure-dev-key')

DEBUG = os.environ.get('DJANGO_DEBUG', 'false').lower() in ('1', 'true', 'yes')

ALLOWED_HOSTS = os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',')

INSTALLED_APPS = [
    'idgen',
]

MIDDLEWARE = [
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'snowflake_service.urls'

# 不使用数据库
DATABASES = {}

USE_TZ = True
TIME_ZONE = 'Asia/Shanghai'

# 雪花算法配置，数据中心ID和机器ID由运维通过环境变量分配
SNOWFLAKE = {
    'DATA_CENTER_ID': int(os.environ.get('SNOWFLAKE_DATA_CENTER_ID', 1)),
    'MACHINE_ID': int(os.environ.get('SNOWFLAKE_MACHINE_ID', 1)),
    'EPOCH': int(os.environ.get('SNOWFLAKE_EPOCH', DEFAULT_SNOWFLAKE_EPOCH)),
    'DATA_CENTER_BITS': int(os.environ.get('SNOWFLAKE_DATA_CENTER_BITS', 5)),
    'MACHINE_BITS': int(os.environ.get('SNOWFLAKE_MACHINE_BITS', 5)),
    'SEQUENCE_BITS': int(os.environ.get('SNOWFLAKE_SEQUENCE_BITS', 12)),
    # Celery子进程的机器ID = WORKER_MACHINE_ID_BASE + 进程池序号，不能与MACHINE_ID重复
    'WORKER_MACHINE_ID_BASE': int(os.environ.get('SNOWFLAKE_WORKER_MACHINE_ID_BASE', 16)),
    # 管理命令使用的机器ID
    'CLI_MACHINE_ID': int(os.environ.get('SNOWFLAKE_CLI_MACHINE_ID', 0)),
}

# 单次请求最多生成的ID数量
IDGEN_MAX_BATCH = int(os.environ.get('IDGEN_MAX_BATCH', 1000))
# 每个IP每秒最多请求次数
IDGEN_RATE_LIMIT = int(os.environ.get('IDGEN_RATE_LIMIT', 100))

REDIS_URL = os.environ.get('REDIS_URL', 'redis://127.0.0.1:6379/0')

CACHES = {
    'default': {
        'BACKEND': 'django_redis.cache.RedisCache',
        'LOCATION': REDIS_URL,
        'OPTIONS': {
            'CLIENT_CLASS': 'django_redis.client.DefaultClient',
            # 缓存只用于发布时间戳，Redis故障时不影响生成ID
            'IGNORE_EXCEPTIONS': True,
        },
    }
}

DJANGO_REDIS_LOG_IGNORED_EXCEPTIONS = True

# Celery配置
CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', 'redis://127.0.0.1:6379/1')
CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', 'redis://127.0.0.1:6379/2')
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': os.environ.get('DJANGO_LOG_LEVEL', 'INFO'),
    },
}
