from django.core.exceptions import ImproperlyConfigured
from django.core.management.base import BaseCommand, CommandError

from idgen.generator import ROLE_CLI, get_snowflake
from utils.snow_flake import Snowflake, SnowflakeError


class Command(BaseCommand):
    help = "生成并打印雪花ID"

    def add_arguments(self, parser):
        parser.add_argument('--count', type=int, default=10, help="生成数量，默认10个")
        parser.add_argument('--data-center-id', type=int, help="覆盖配置中的数据中心ID")
        parser.add_argument('--machine-id', type=int, help="覆盖SNOWFLAKE_CLI_MACHINE_ID")
        parser.add_argument('--parse', action='store_true', help="同时输出ID的各个组成部分")

    def handle(self, *args, **options):
        try:
            snowflake = self._get_snowflake(options['data_center_id'], options['machine_id'])
            ids = snowflake.generate_ids(options['count'])
        except (SnowflakeError, ValueError, ImproperlyConfigured) as e:
            raise CommandError(str(e))

        for snowflake_id in ids:
            if options['parse']:
                parts = snowflake.parse_id(snowflake_id)
                self.stdout.write(
                    f"{snowflake_id} timestamp={parts.timestamp} data_center_id={parts.data_center_id} "
                    f"machine_id={parts.machine_id} sequence={parts.sequence} "
                    f"created_at={parts.created_at.isoformat()}"
                )
            else:
                self.stdout.write(str(snowflake_id))

    def _get_snowflake(self, data_center_id, machine_id):
        default = get_snowflake(ROLE_CLI)
        if data_center_id is None and machine_id is None:
            return default
        return Snowflake(
            data_center_id=default.data_center_id if data_center_id is None else data_center_id,
            machine_id=default.machine_id if machine_id is None else machine_id,
            epoch=default.epoch,
            data_center_bits=default.data_center_bits,
            machine_bits=default.machine_bits,
            sequence_bits=default.sequence_bits,
        )
