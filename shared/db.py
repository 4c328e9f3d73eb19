"""Document store access backed by DynamoDB.

The connection is opened lazily on the first call to ``get_connection()``
and reused for the lifetime of the process.
"""

import os
import json
import uuid
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import boto3

logger = logging.getLogger(__name__)

# Environment variables
CREDENTIAL_ENV = "CAPTURE_SERVICE_ACCOUNT"
ENDPOINT_ENV = "CAPTURE_DATABASE_URL"
DEFAULT_REGION = os.environ.get("AWS_REGION", "us-east-1")
PRIMARY_KEY = "id"

REQUIRED_CREDENTIAL_KEYS = ("aws_access_key_id", "aws_secret_access_key")


class ConfigurationError(RuntimeError):
    """Raised when the store credential is missing or malformed."""


def _load_credential(raw: Optional[str], env_name: str) -> Dict[str, str]:
    if not raw:
        raise ConfigurationError(f"{env_name} environment variable is required")

    try:
        credential = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{env_name} is not valid JSON: {e}") from e

    if not isinstance(credential, dict):
        raise ConfigurationError(f"{env_name} must be a JSON object")

    missing = [k for k in REQUIRED_CREDENTIAL_KEYS if not credential.get(k)]
    if missing:
        raise ConfigurationError(f"{env_name} is missing required keys: {missing}")

    session_kwargs = {
        "aws_access_key_id": credential["aws_access_key_id"],
        "aws_secret_access_key": credential["aws_secret_access_key"],
        "region_name": credential.get("region_name") or credential.get("region") or DEFAULT_REGION,
    }
    if credential.get("aws_session_token"):
        session_kwargs["aws_session_token"] = credential["aws_session_token"]
    return session_kwargs


def _prepare_value(value: Any, ignore_undefined: bool, path: str) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        prepared = {}
        for k, v in value.items():
            if v is None:
                if ignore_undefined:
                    continue
                raise ValueError(f"Cannot store undefined value for field '{path}{k}'")
            prepared[k] = _prepare_value(v, ignore_undefined, f"{path}{k}.")
        return prepared
    if isinstance(value, (list, tuple)):
        return [_prepare_value(v, ignore_undefined, path) for v in value]
    return value


def prepare_item(document: Dict[str, Any], ignore_undefined: bool = True) -> Dict[str, Any]:
    """Convert a document into a DynamoDB item.

    Floats become ``Decimal``. ``None`` entries are dropped when
    ``ignore_undefined`` is set, otherwise they raise ``ValueError``.
    """
    return _prepare_value(document, ignore_undefined, "")


class DocumentCollection:
    def __init__(self, table: Any, ignore_undefined_properties: bool = True):
        self.table = table
        self.ignore_undefined_properties = ignore_undefined_properties

    @property
    def name(self) -> str:
        return self.table.name

    def add(self, document: Dict[str, Any]) -> str:
        """Insert ``document`` under a new primary key and return the key."""
        document_id = str(uuid.uuid4())
        item = prepare_item({**document, PRIMARY_KEY: document_id}, self.ignore_undefined_properties)
        self.table.put_item(Item=item)
        logger.debug(f"Stored document {document_id} in {self.name}")
        return document_id


class DocumentStore:
    def __init__(self, resource: Any, ignore_undefined_properties: bool = True):
        self.resource = resource
        self.ignore_undefined_properties = ignore_undefined_properties

    def collection(self, name: str) -> DocumentCollection:
        return DocumentCollection(self.resource.Table(name), self.ignore_undefined_properties)


class DatabaseConnector:
    """Opens one DynamoDB connection on first use and hands out the same one afterwards."""

    def __init__(
        self,
        credential_env: str = CREDENTIAL_ENV,
        endpoint_env: str = ENDPOINT_ENV,
        ignore_undefined_properties: bool = True,
    ):
        self.credential_env = credential_env
        self.endpoint_env = endpoint_env
        self.ignore_undefined_properties = ignore_undefined_properties
        self._store: Optional[DocumentStore] = None

    def get_connection(self) -> DocumentStore:
        if self._store is not None:
            return self._store

        session_kwargs = _load_credential(os.environ.get(self.credential_env), self.credential_env)
        endpoint_url = os.environ.get(self.endpoint_env) or None

        try:
            session = boto3.session.Session(**session_kwargs)
            resource = session.resource("dynamodb", endpoint_url=endpoint_url)
        except Exception as e:
            logger.error(f"Error initializing document store: {e}")
            raise ConfigurationError("Failed to initialize document store client") from e

        self._store = DocumentStore(resource, ignore_undefined_properties=self.ignore_undefined_properties)
        logger.info(
            f"Document store initialized (region={session_kwargs['region_name']}, "
            f"endpoint={endpoint_url or 'default'})"
        )
        return self._store
