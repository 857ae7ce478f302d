from memory_gateway.domain.models import Account
from memory_gateway.infrastructure.neo4j.driver import Neo4jQuery
from memory_gateway.infrastructure.neo4j.queries import AccountQueries


class AccountRepository:
    """Resolves opaque access keys to accounts. Never writes."""

    def __init__(self, query: Neo4jQuery):
        self.query = query

    async def get_by_api_key(self, api_key: str) -> Account | None:
        return await self.query.execute_single(
            AccountQueries.by_api_key(),
            {"api_key": api_key},
            lambda record: Account(
                id=str(record["id"]),
                subscription_status=record["subscription_status"],
            ),
        )
