"""Core constants used across pipeline stages.

This module centralizes the shared event vocabulary and defaults.
Keeping values here avoids magic literals in stage logic.
"""

from __future__ import annotations

EVENT_SOURCE = "cdkpatterns.the-eventbridge-etl"
DEFAULT_EVENT_BUS_NAME = "default"
MAX_PUT_EVENTS_ENTRIES = 10

DETAIL_TYPE_EXTRACTED = "s3RecordExtraction"
DETAIL_TYPE_TRANSFORMED = "transform"
DETAIL_TYPE_LOADED = "loaded"
DETAIL_TYPE_JOB_STARTED = "ecs-started"

STATUS_EXTRACTED = "extracted"
STATUS_TRANSFORMED = "transformed"
STATUS_SUCCESS = "success"

FIELD_DELIMITER = ","

ENV_AWS_REGION = "AWS_REGION"
ENV_AWS_PROFILE = "AWS_PROFILE"
ENV_EVENT_BUS_NAME = "EVENT_BUS_NAME"
ENV_CLUSTER_NAME = "CLUSTER_NAME"
ENV_TASK_DEFINITION = "TASK_DEFINITION"
ENV_SUBNETS = "SUBNETS"
ENV_CONTAINER_NAME = "CONTAINER_NAME"
ENV_TABLE_NAME = "TABLE_NAME"
ENV_ASSIGN_PUBLIC_IP = "ASSIGN_PUBLIC_IP"
ENV_STAGE_CONCURRENCY_LIMIT = "STAGE_CONCURRENCY_LIMIT"
ENV_STAGE_SLOT_TIMEOUT = "STAGE_SLOT_TIMEOUT_SECONDS"
ENV_S3_BUCKET_NAME = "S3_BUCKET_NAME"
ENV_S3_OBJECT_KEY = "S3_OBJECT_KEY"

DEFAULT_ASSIGN_PUBLIC_IP = "DISABLED"
DEFAULT_STAGE_CONCURRENCY_LIMIT = 2
DEFAULT_STAGE_SLOT_TIMEOUT_SECONDS = 3.0

JOB_LAUNCH_TYPE = "FARGATE"
JOB_PLATFORM_VERSION = "LATEST"
JOB_DESIRED_COUNT = 1

RECORD_ID_FIELD = "ID"
RECORD_HOUSE_NUMBER_FIELD = "HouseNum"
RECORD_STREET_FIELD = "Street"
RECORD_TOWN_FIELD = "Town"
RECORD_ZIP_FIELD = "Zip"
RECORD_SOURCE_FIELDS = (
    RECORD_ID_FIELD,
    RECORD_HOUSE_NUMBER_FIELD,
    RECORD_STREET_FIELD,
    RECORD_TOWN_FIELD,
    RECORD_ZIP_FIELD,
)
