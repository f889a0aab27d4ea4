from django.apps import AppConfig


class IdgenConfig(AppConfig):
    name = 'idgen'
    verbose_name = '雪花ID生成'

    def ready(self):
        # 注册setting_changed信号处理
        from . import generator  # noqa: F401
