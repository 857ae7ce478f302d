from memory_gateway.core.logging import get_logger
from memory_gateway.domain.models import RequestRecord
from memory_gateway.infrastructure.neo4j.driver import Neo4jQuery
from memory_gateway.infrastructure.neo4j.queries import RequestQueries

logger = get_logger(__name__)


class RequestLogRepository:
    """Persists request/response pairs as (:Request) nodes."""

    def __init__(self, query: Neo4jQuery):
        self.query = query

    async def insert(self, record: RequestRecord) -> str:
        inserted = await self.query.execute_single(
            RequestQueries.insert(),
            {"properties": record.to_neo4j_properties()},
            lambda row: str(row["id"]),
        )
        logger.debug("Stored request record", request_record_id=inserted, model=record.model)
        return inserted or record.id
