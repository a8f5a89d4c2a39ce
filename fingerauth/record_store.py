"""Record store gateways

A record store resolves a subject id to its EnrollmentRecord, or None when
the subject is not enrolled. Gateways are read-only from the verifier's
point of view and are called exactly once per verification.

Gateways:
- InMemoryRecordStore: dict-backed (tests, local runs)
- DynamoDBRecordStore: ``Fingerprint-db`` table, key ``studentId``,
  attribute ``Images`` = map of label -> base64 string
- BiometricDatabase (fingerauth.webserver.database): SQLCipher table
"""

from __future__ import annotations
import logging
from typing import Any, Dict, Mapping, Optional, Protocol, Union

from fingerauth.errors import InvalidRecordError
from fingerauth.models import EnrollmentRecord

logger = logging.getLogger(__name__)

DEFAULT_TABLE_NAME = "Fingerprint-db"
KEY_ATTRIBUTE = "studentId"
IMAGES_ATTRIBUTE = "Images"


class RecordStore(Protocol):
    """Enrollment lookup capability."""

    def lookup(self, subject_id: str) -> Optional[EnrollmentRecord]:
        ...


class InMemoryRecordStore:
    """Record store over a plain dict of ``subject_id -> {label: base64}``."""

    def __init__(self, records: Optional[Mapping[str, Mapping[str, Union[str, bytes]]]] = None) -> None:
        self._records: Dict[str, Mapping[str, Union[str, bytes]]] = dict(records or {})

    def put(self, subject_id: str, images: Mapping[str, Union[str, bytes]]) -> None:
        self._records[subject_id] = dict(images)

    def lookup(self, subject_id: str) -> Optional[EnrollmentRecord]:
        images = self._records.get(subject_id)
        if images is None:
            return None
        return EnrollmentRecord.from_mapping(subject_id, images)


class DynamoDBRecordStore:
    """Enrollment records kept in DynamoDB.

    Item layout::

        {
            "studentId": {"S": "<subject id>"},
            "Images": {"M": {"<label>": {"S": "<base64 image>"}, ...}}
        }

    Attributes:
        table_name: DynamoDB table name
        client: boto3 DynamoDB client (low-level API)
    """

    def __init__(
        self,
        table_name: str = DEFAULT_TABLE_NAME,
        client: Any = None,
        region_name: Optional[str] = None
    ) -> None:
        if client is None:
            import boto3
            client = boto3.client("dynamodb", region_name=region_name)

        self.table_name = table_name
        self.client = client

    def lookup(self, subject_id: str) -> Optional[EnrollmentRecord]:
        """Fetch one item by key.

        Returns:
            EnrollmentRecord or None if no item exists

        Raises:
            InvalidRecordError: Item exists but ``Images`` is not a map of strings
        """
        response = self.client.get_item(
            TableName=self.table_name,
            Key={KEY_ATTRIBUTE: {"S": subject_id}},
        )

        item = response.get("Item")
        if not item:
            return None

        images_attr = item.get(IMAGES_ATTRIBUTE) or {}
        images = images_attr.get("M")
        if images is None:
            logger.warning(f"Record {subject_id} has no {IMAGES_ATTRIBUTE} map")
            raise InvalidRecordError("Invalid stored fingerprint data")

        decoded: Dict[str, str] = {}
        for label, value in images.items():
            if "S" not in value:
                raise InvalidRecordError("Invalid stored fingerprint data")
            decoded[label] = value["S"]

        return EnrollmentRecord.from_mapping(subject_id, decoded)
