"""Neo4j driver lifecycle, schema bootstrap and the query executor used by the repositories."""

from collections.abc import AsyncGenerator, Callable
from typing import Any, Generic, LiteralString, TypeVar

from neo4j import AsyncDriver, AsyncGraphDatabase, Query, Record
from neo4j.exceptions import DriverError, Neo4jError

from memory_gateway.core.base import DatabaseErrorDetails
from memory_gateway.core.errors import StoreError
from memory_gateway.core.logging import get_logger
from memory_gateway.infrastructure.neo4j.queries import (
    MEMORY_INDEX,
    SNIPPET_INDEX,
    IndexQueries,
)

logger = get_logger(__name__)

T = TypeVar("T")


async def create_neo4j_driver(
    uri: str,
    user: str,
    password: str,
    max_connection_pool_size: int = 50,
    max_connection_lifetime: int = 3600,
) -> AsyncGenerator[AsyncDriver, None]:
    """Yield a verified driver; it is closed when the generator is finalized."""
    driver = AsyncGraphDatabase.driver(
        uri,
        auth=(user, password),
        max_connection_pool_size=max_connection_pool_size,
        max_connection_lifetime=max_connection_lifetime,
    )
    try:
        await driver.verify_connectivity()
        logger.info("Connected to Neo4j", uri=uri, pool_size=max_connection_pool_size)
        yield driver
    finally:
        await driver.close()
        logger.info("Neo4j driver closed", uri=uri)


async def ensure_vector_indexes(driver: AsyncDriver, dimensions: int) -> None:
    """Create the Memory and Snippet vector indexes and the Memory constraints if absent."""
    async with driver.session() as session:
        for statement in (
            IndexQueries.vector_index(MEMORY_INDEX, "Memory", dimensions),
            IndexQueries.vector_index(SNIPPET_INDEX, "Snippet", dimensions),
            IndexQueries.memory_id_constraint(),
            IndexQueries.memory_scope_index(),
        ):
            await session.run(statement)
    logger.info("Vector indexes ready", dimensions=dimensions, indexes=[MEMORY_INDEX, SNIPPET_INDEX])


class Neo4jQuery(Generic[T]):
    """Runs single statements in auto-commit transactions bounded by ``timeout`` seconds.

    Rows are handed to an optional transformer; driver and server failures
    surface as StoreError.
    """

    def __init__(self, driver: AsyncDriver, timeout: float | None = None) -> None:
        self.driver = driver
        self.timeout = timeout

    async def _records(self, query: LiteralString, params: dict[str, Any] | None, operation: str) -> list[Record]:
        logger.debug("Running Neo4j statement", operation=operation, params=sorted(params or {}))
        try:
            async with self.driver.session() as session:
                result = await session.run(Query(query, timeout=self.timeout), parameters=params or {})
                if operation == "execute_single":
                    record = await result.single(strict=False)
                    return [] if record is None else [record]
                return [record async for record in result]
        except (Neo4jError, DriverError) as e:
            raise StoreError(
                message=f"Neo4j {operation} failed: {e}",
                details=DatabaseErrorDetails(
                    source="Neo4jQuery",
                    operation=operation,
                    service_name="Neo4j",
                    query_type=operation,
                ),
            ) from e

    async def execute_list(
        self,
        query: LiteralString,
        params: dict[str, Any] | None = None,
        result_transformer: Callable[[Any], T] | None = None,
    ) -> list[T]:
        records = await self._records(query, params, "execute_list")
        if result_transformer is None:
            return records  # type: ignore[return-value]
        return [result_transformer(record) for record in records]

    async def execute_single(
        self,
        query: LiteralString,
        params: dict[str, Any] | None = None,
        result_transformer: Callable[[Any], T] | None = None,
    ) -> T | None:
        """First row of the result, or None when the statement returned nothing."""
        records = await self._records(query, params, "execute_single")
        if not records:
            return None
        if result_transformer is None:
            return records[0]  # type: ignore[return-value]
        return result_transformer(records[0])
