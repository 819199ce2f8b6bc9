#
# Copyright (c) Granulate. All rights reserved.
# Licensed under the AGPL3 License. See LICENSE.md in the project root for license information.
#
import threading
from abc import ABCMeta, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple

import boto3
from botocore.config import Config as BotocoreConfig
from botocore.exceptions import BotoCoreError, ClientError

from rds_exporter.config import Instance
from rds_exporter.exceptions import SessionUnavailableError
from rds_exporter.log import get_logger_adapter

AWS_CONNECT_TIMEOUT = 5
AWS_READ_TIMEOUT = 15
ASSUME_ROLE_SESSION_NAME = "rds_exporter"

logger = get_logger_adapter(__name__)


@dataclass(frozen=True)
class SessionInstance:
    """
    Attributes of the live RDS instance, as reported by DescribeDBInstances.
    """

    region: str
    instance: str
    allocated_storage: int  # GB
    instance_class: str


class SessionProviderBase(metaclass=ABCMeta):
    @abstractmethod
    def get_session(self, region: str, instance: str) -> Optional[Tuple[Any, SessionInstance]]:
        """
        Returns a CloudWatch client usable for the instance along with the instance attributes,
        or None if no session could be established for it.
        """
        raise NotImplementedError


def botocore_config() -> BotocoreConfig:
    # no retries: a failed call skips the metric for this cycle, the next cycle tries again.
    return BotocoreConfig(
        connect_timeout=AWS_CONNECT_TIMEOUT,
        read_timeout=AWS_READ_TIMEOUT,
        retries={"total_max_attempts": 1, "mode": "standard"},
    )


def _credentials_key(instance: Instance) -> Tuple[str, Optional[str], Optional[str], Optional[str]]:
    return instance.region, instance.aws_access_key, instance.aws_secret_key, instance.aws_role_arn


class Boto3SessionProvider(SessionProviderBase):
    """
    One boto3 session (and one CloudWatch client) per distinct region + credentials; instances
    sharing those share the client. Instance attributes are resolved once, on first use.
    """

    def __init__(self, instances: Iterable[Instance]) -> None:
        self._instances: Dict[Tuple[str, str], Instance] = {(i.region, i.instance): i for i in instances}
        self._clients: Dict[Tuple[str, Optional[str], Optional[str], Optional[str]], Tuple[Any, Any]] = {}
        self._session_instances: Dict[Tuple[str, str], SessionInstance] = {}
        self._lock = threading.Lock()

    def _create_session(self, instance: Instance) -> boto3.Session:
        session = boto3.Session(
            aws_access_key_id=instance.aws_access_key,
            aws_secret_access_key=instance.aws_secret_key,
            region_name=instance.region,
        )
        if instance.aws_role_arn is None:
            return session

        credentials = session.client("sts", config=botocore_config()).assume_role(
            RoleArn=instance.aws_role_arn, RoleSessionName=ASSUME_ROLE_SESSION_NAME
        )["Credentials"]
        return boto3.Session(
            aws_access_key_id=credentials["AccessKeyId"],
            aws_secret_access_key=credentials["SecretAccessKey"],
            aws_session_token=credentials["SessionToken"],
            region_name=instance.region,
        )

    def _get_clients(self, instance: Instance) -> Tuple[Any, Any]:
        key = _credentials_key(instance)
        if key not in self._clients:
            session = self._create_session(instance)
            config = botocore_config()
            self._clients[key] = (session.client("cloudwatch", config=config), session.client("rds", config=config))
        return self._clients[key]

    @staticmethod
    def _describe_instance(rds_client: Any, instance: Instance) -> SessionInstance:
        response = rds_client.describe_db_instances(DBInstanceIdentifier=instance.instance)
        db_instances = response.get("DBInstances", [])
        if not db_instances:
            raise SessionUnavailableError(instance.region, instance.instance, "instance not found")
        db_instance = db_instances[0]
        return SessionInstance(
            region=instance.region,
            instance=instance.instance,
            allocated_storage=int(db_instance.get("AllocatedStorage", 0)),
            instance_class=db_instance["DBInstanceClass"],
        )

    def get_session(self, region: str, instance: str) -> Optional[Tuple[Any, SessionInstance]]:
        config_instance = self._instances.get((region, instance))
        if config_instance is None:
            logger.error("Instance is not configured", region=region, instance=instance)
            return None

        with self._lock:
            try:
                cloudwatch, rds = self._get_clients(config_instance)
                if (region, instance) not in self._session_instances:
                    self._session_instances[(region, instance)] = self._describe_instance(rds, config_instance)
            except (BotoCoreError, ClientError, SessionUnavailableError) as e:
                logger.error("Failed to establish an AWS session", region=region, instance=instance, error=str(e))
                return None

            return cloudwatch, self._session_instances[(region, instance)]
