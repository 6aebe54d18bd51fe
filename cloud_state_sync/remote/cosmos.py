"""
Cosmos DB remote store.

Stores snapshot records in a single Azure Cosmos DB container partitioned
by user, so every query and point read stays inside one partition.

Supports multiple authentication methods:
- Key-based authentication (if org policy allows)
- Azure AD via DefaultAzureCredential (recommended)
- Azure Managed Identity
- Service Principal

Container schema:
{
    "id": "{key}",                 // current key or history key
    "user_id": "{user_id}",        // partition key
    "key": "{key}",
    "value": {"tsms_theme": "dark", ...},
    "updated_at": "{iso_timestamp}"
}
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from azure.cosmos import PartitionKey
from azure.cosmos.aio import ContainerProxy, CosmosClient
from azure.cosmos.exceptions import CosmosHttpResponseError, CosmosResourceNotFoundError

from ..config import DEFAULT_CURRENT_KEY
from ..exceptions import AuthenticationError, RemoteError
from .base import RemoteRecord, RemoteStore

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "cloud-state-sync"
DEFAULT_CONTAINER = "app_state"
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0  # seconds


class CosmosAuthMethod(Enum):
    """Authentication method for Cosmos DB.

    KEY: Use account key (not recommended for production)
    DEFAULT_CREDENTIAL: Use Azure DefaultAzureCredential (recommended)
    MANAGED_IDENTITY: Use Azure Managed Identity explicitly
    SERVICE_PRINCIPAL: Use Service Principal with client_id/client_secret
    """

    KEY = "key"
    DEFAULT_CREDENTIAL = "default_credential"
    MANAGED_IDENTITY = "managed_identity"
    SERVICE_PRINCIPAL = "service_principal"


@dataclass
class CosmosRemoteConfig:
    """Configuration for the Cosmos DB remote store.

    Environment Variables:
        CLOUD_SYNC_COSMOS_ENDPOINT: Cosmos DB endpoint URL
        CLOUD_SYNC_COSMOS_KEY: Cosmos DB key (if using key auth)
        CLOUD_SYNC_COSMOS_DATABASE: Database name (default: cloud-state-sync)
        CLOUD_SYNC_COSMOS_CONTAINER: Container name (default: app_state)
        CLOUD_SYNC_COSMOS_AUTH_METHOD: Auth method (default: default_credential)
        AZURE_TENANT_ID: Azure tenant ID (for service principal)
        AZURE_CLIENT_ID: Azure client ID (for service principal/managed identity)
        AZURE_CLIENT_SECRET: Azure client secret (for service principal)
    """

    endpoint: str
    auth_method: CosmosAuthMethod = CosmosAuthMethod.DEFAULT_CREDENTIAL
    key: str | None = None
    database_name: str = DEFAULT_DATABASE
    container_name: str = DEFAULT_CONTAINER
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: float = DEFAULT_RETRY_DELAY

    azure_tenant_id: str | None = None
    azure_client_id: str | None = None
    azure_client_secret: str | None = None

    @classmethod
    def from_env(cls) -> CosmosRemoteConfig:
        """Create config from environment variables.

        Raises:
            AuthenticationError: If the endpoint is not configured
        """
        endpoint = os.environ.get("CLOUD_SYNC_COSMOS_ENDPOINT")
        if not endpoint:
            raise AuthenticationError(
                "cosmos", "CLOUD_SYNC_COSMOS_ENDPOINT environment variable not set"
            )

        auth_method_str = os.environ.get("CLOUD_SYNC_COSMOS_AUTH_METHOD", "default_credential")
        try:
            auth_method = CosmosAuthMethod(auth_method_str.lower())
        except ValueError:
            auth_method = CosmosAuthMethod.DEFAULT_CREDENTIAL

        return cls(
            endpoint=endpoint,
            auth_method=auth_method,
            key=os.environ.get("CLOUD_SYNC_COSMOS_KEY"),
            database_name=os.environ.get("CLOUD_SYNC_COSMOS_DATABASE", DEFAULT_DATABASE),
            container_name=os.environ.get("CLOUD_SYNC_COSMOS_CONTAINER", DEFAULT_CONTAINER),
            azure_tenant_id=os.environ.get("AZURE_TENANT_ID"),
            azure_client_id=os.environ.get("AZURE_CLIENT_ID"),
            azure_client_secret=os.environ.get("AZURE_CLIENT_SECRET"),
        )


def _get_credential(config: CosmosRemoteConfig) -> Any:
    """Get the appropriate credential based on auth method.

    Raises:
        AuthenticationError: If credential cannot be created
    """
    auth_method = config.auth_method

    if auth_method == CosmosAuthMethod.KEY:
        if not config.key:
            raise AuthenticationError(config.endpoint, "key required for KEY authentication")
        return config.key

    if auth_method == CosmosAuthMethod.DEFAULT_CREDENTIAL:
        from azure.identity.aio import DefaultAzureCredential

        return DefaultAzureCredential()

    if auth_method == CosmosAuthMethod.MANAGED_IDENTITY:
        from azure.identity.aio import ManagedIdentityCredential

        # If client_id is provided, use user-assigned managed identity
        if config.azure_client_id:
            return ManagedIdentityCredential(client_id=config.azure_client_id)
        return ManagedIdentityCredential()

    if auth_method == CosmosAuthMethod.SERVICE_PRINCIPAL:
        if not all([config.azure_tenant_id, config.azure_client_id, config.azure_client_secret]):
            raise AuthenticationError(
                config.endpoint,
                "azure_tenant_id, azure_client_id, and azure_client_secret "
                "required for SERVICE_PRINCIPAL authentication",
            )
        from azure.identity.aio import ClientSecretCredential

        return ClientSecretCredential(
            tenant_id=config.azure_tenant_id,
            client_id=config.azure_client_id,
            client_secret=config.azure_client_secret,
        )

    raise AuthenticationError(config.endpoint, f"Unsupported auth method: {auth_method}")


class CosmosRemoteStore(RemoteStore):
    """Cosmos DB implementation of RemoteStore.

    Partition key path: /user_id. The document id is the record key, so
    (user, key) is unique and upsert gives last-writer-wins semantics.

    Transient failures (429 and 5xx) are retried with exponential backoff;
    every other failure surfaces as RemoteError.
    """

    def __init__(
        self,
        config: CosmosRemoteConfig,
        current_key: str = DEFAULT_CURRENT_KEY,
        container: ContainerProxy | None = None,
    ) -> None:
        """Initialize the Cosmos DB remote store.

        Args:
            config: Connection configuration
            current_key: Key of the current-state record
            container: Pre-built container proxy (skips connection setup)
        """
        super().__init__(current_key)
        self.config = config
        self._credential: Any = None
        self._client: CosmosClient | None = None
        self._container: ContainerProxy | None = container
        self._initialized = container is not None

    @classmethod
    async def create(
        cls,
        config: CosmosRemoteConfig | None = None,
        current_key: str = DEFAULT_CURRENT_KEY,
    ) -> CosmosRemoteStore:
        """Create and connect a store (config defaults to environment)."""
        store = cls(config or CosmosRemoteConfig.from_env(), current_key)
        await store.initialize()
        return store

    async def initialize(self) -> None:
        """Connect and ensure the database and container exist.

        Raises:
            RemoteError: If the connection cannot be established
        """
        if self._initialized:
            return

        try:
            self._credential = _get_credential(self.config)
            client = CosmosClient(self.config.endpoint, credential=self._credential)
            self._client = client
            database = await client.create_database_if_not_exists(id=self.config.database_name)
            self._container = await database.create_container_if_not_exists(
                id=self.config.container_name,
                partition_key=PartitionKey(path="/user_id"),
            )
            self._initialized = True
            logger.info(
                f"Connected to Cosmos DB: {self.config.endpoint} "
                f"(database={self.config.database_name}, "
                f"container={self.config.container_name}, "
                f"auth={self.config.auth_method.value})"
            )
        except CosmosHttpResponseError as e:
            if e.status_code in (401, 403):
                raise RemoteError(
                    "connect", AuthenticationError(self.config.endpoint, str(e))
                ) from e
            raise RemoteError("connect", e) from e
        except Exception as e:
            raise RemoteError("connect", e) from e

    async def close(self) -> None:
        """Close the Cosmos DB connection."""
        if self._client:
            await self._client.close()
            self._client = None
            self._container = None
            self._initialized = False
        if self._credential is not None and hasattr(self._credential, "close"):
            await self._credential.close()
            self._credential = None

    async def __aenter__(self) -> CosmosRemoteStore:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _get_container(self) -> ContainerProxy:
        await self.initialize()
        if self._container is None:
            raise RemoteError("get_container", RuntimeError("Container not initialized"))
        return self._container

    async def _with_retry(self, operation: str, call: Callable[[], Awaitable[Any]]) -> Any:
        """Execute ``call`` with retry logic for transient failures.

        CosmosResourceNotFoundError propagates unchanged so callers can
        treat a missing record as a normal outcome.
        """
        attempts = max(1, self.config.max_retries)
        last_error: Exception | None = None

        for attempt in range(attempts):
            try:
                return await call()
            except CosmosResourceNotFoundError:
                raise
            except CosmosHttpResponseError as e:
                status = e.status_code or 0
                if status in (401, 403):
                    raise RemoteError(
                        operation, AuthenticationError(self.config.endpoint, str(e))
                    ) from e
                # Don't retry client errors other than throttling
                if 400 <= status < 500 and status != 429:
                    raise RemoteError(operation, e) from e

                last_error = e
                if attempt < attempts - 1:
                    delay = self.config.retry_delay * (2**attempt)
                    logger.debug(f"Cosmos {operation} failed ({status}), retrying in {delay}s")
                    await asyncio.sleep(delay)
            except Exception as e:
                raise RemoteError(operation, e) from e

        raise RemoteError(operation, last_error) from last_error

    def _document(self, user_id: str, key: str, snapshot: dict[str, str]) -> dict[str, Any]:
        return RemoteRecord(
            user_id=user_id,
            key=key,
            value=dict(snapshot),
            updated_at=datetime.now(UTC).isoformat(),
        ).to_dict()

    async def upsert_current(self, snapshot: dict[str, str]) -> RemoteRecord:
        user_id = self._require_user("upsert_current")
        container = await self._get_container()
        doc = self._document(user_id, self.current_key, snapshot)

        stored = await self._with_retry("upsert_current", lambda: container.upsert_item(body=doc))
        return RemoteRecord.from_dict(stored or doc)

    async def insert_history(self, snapshot: dict[str, str], history_key: str | None = None) -> str:
        user_id = self._require_user("insert_history")
        container = await self._get_container()
        key = history_key or self.new_history_key()
        doc = self._document(user_id, key, snapshot)

        await self._with_retry("insert_history", lambda: container.create_item(body=doc))
        return key

    async def list_history(self) -> list[RemoteRecord]:
        user_id = self._require_user("list_history")
        container = await self._get_container()

        query = (
            "SELECT c.id, c.user_id, c.key, c.updated_at FROM c "
            "WHERE c.user_id = @user_id AND STARTSWITH(c.id, @prefix) "
            "ORDER BY c.updated_at DESC"
        )
        params: list[dict[str, Any]] = [
            {"name": "@user_id", "value": user_id},
            {"name": "@prefix", "value": self.history_prefix},
        ]

        async def _collect() -> list[dict[str, Any]]:
            items: list[dict[str, Any]] = []
            async for item in container.query_items(
                query=query,
                parameters=params,
                partition_key=user_id,
            ):
                items.append(item)
            return items

        items = await self._with_retry("list_history", _collect)
        return [RemoteRecord.from_dict(item) for item in items]

    async def delete_records(self, keys: Iterable[str]) -> int:
        user_id = self._require_user("delete_records")
        container = await self._get_container()

        deleted = 0
        for key in keys:
            try:
                await self._with_retry(
                    "delete_records",
                    lambda key=key: container.delete_item(item=key, partition_key=user_id),
                )
                deleted += 1
            except CosmosResourceNotFoundError:
                # Already deleted
                continue
        return deleted

    async def select_current(self) -> dict[str, str] | None:
        user_id = self._require_user("select_current")
        container = await self._get_container()

        try:
            doc = await self._with_retry(
                "select_current",
                lambda: container.read_item(item=self.current_key, partition_key=user_id),
            )
        except CosmosResourceNotFoundError:
            return None

        value = (doc or {}).get("value")
        if not isinstance(value, dict):
            return None
        return {str(k): "" if v is None else str(v) for k, v in value.items()}
