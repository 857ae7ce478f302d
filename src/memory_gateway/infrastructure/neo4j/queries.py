"""Centralized query definitions.

This is the SINGLE SOURCE OF TRUTH for all Cypher queries in the gateway.

Graph layout:
    (:Memory {id, user_id, store_id, content, embedding, updated_at})
    (:DocumentContext {id, context})
    (:Snippet {id?, context_id, content, embedding})  written by ingestion
    (:User {id, api_key, subscription_status})        owned by the account service
    (:Request {id, model, request, response, num_tokens, duration_ms, user_id, created_at})
    (:EmbeddingCache {cache_key, model, vector, dimensions, created})
"""

from typing import LiteralString, cast

MEMORY_INDEX = "memory_embeddings"
SNIPPET_INDEX = "snippet_embeddings"


class IndexQueries:
    """Schema bootstrap queries."""

    @staticmethod
    def vector_index(index_name: str, label: str, dimensions: int) -> LiteralString:
        """Vector index creation; index options cannot be parameterised."""
        query = f"""
        CREATE VECTOR INDEX {index_name} IF NOT EXISTS
        FOR (n:{label}) ON n.embedding
        OPTIONS {{indexConfig: {{
            `vector.dimensions`: {int(dimensions)},
            `vector.similarity_function`: 'cosine'
        }}}}
        """
        return cast(LiteralString, query)

    @staticmethod
    def memory_id_constraint() -> LiteralString:
        return "CREATE CONSTRAINT memory_id IF NOT EXISTS FOR (m:Memory) REQUIRE m.id IS UNIQUE"

    @staticmethod
    def memory_scope_index() -> LiteralString:
        return "CREATE INDEX memory_scope IF NOT EXISTS FOR (m:Memory) ON (m.user_id, m.store_id)"


class MemoryQueries:
    """All memory-related queries in one place."""

    @staticmethod
    def similarity_search() -> LiteralString:
        """Scoped nearest-neighbour search over the memory index.

        The index is asked for ``$candidates`` neighbours (more than ``$limit``)
        because scope filtering happens after the index lookup.
        """
        return """
            CALL db.index.vector.queryNodes($index_name, $candidates, $embedding)
            YIELD node, score
            WHERE score >= $threshold
              AND node.user_id = $user_id
              AND node.store_id = $store_id
            RETURN node.id AS id, node.content AS content, score AS similarity
            ORDER BY similarity DESC
            LIMIT $limit
            """

    @staticmethod
    def create() -> LiteralString:
        return """
            CREATE (m:Memory)
            SET m = $properties
            RETURN m.id AS id
            """

    @staticmethod
    def update() -> LiteralString:
        """Overwrite content, embedding and updated_at of one scoped memory."""
        return """
            MATCH (m:Memory {id: $id, user_id: $user_id, store_id: $store_id})
            SET m.content = $content,
                m.embedding = $embedding,
                m.updated_at = $updated_at
            RETURN m.id AS id
            """


class SnippetQueries:
    """Document context and snippet queries."""

    @staticmethod
    def get_context() -> LiteralString:
        return """
            MATCH (c:DocumentContext {id: $context_id})
            RETURN c.id AS id, c.context AS context
            """

    @staticmethod
    def similarity_search() -> LiteralString:
        return """
            CALL db.index.vector.queryNodes($index_name, $candidates, $embedding)
            YIELD node, score
            WHERE score >= $threshold
              AND node.context_id = $context_id
            RETURN coalesce(node.id, elementId(node)) AS id,
                   node.content AS content,
                   score AS similarity
            ORDER BY similarity DESC
            LIMIT $limit
            """


class AccountQueries:
    """Read-only lookups against the account service's User nodes."""

    @staticmethod
    def by_api_key() -> LiteralString:
        return """
            MATCH (u:User {api_key: $api_key})
            RETURN u.id AS id, u.subscription_status AS subscription_status
            LIMIT 1
            """


class RequestQueries:
    """Audit trail queries."""

    @staticmethod
    def insert() -> LiteralString:
        return """
            CREATE (r:Request)
            SET r = $properties
            WITH r
            OPTIONAL MATCH (u:User {id: $properties.user_id})
            FOREACH (_ IN CASE WHEN u IS NULL THEN [] ELSE [1] END |
                MERGE (u)-[:MADE]->(r)
            )
            RETURN r.id AS id
            """


class EmbeddingCacheQueries:
    """Embedding cache queries."""

    @staticmethod
    def get() -> LiteralString:
        return """
            MATCH (e:EmbeddingCache {cache_key: $key, model: $model})
            WHERE e.created > datetime() - duration($max_age)
            SET e.hit_count = COALESCE(e.hit_count, 0) + 1
            RETURN e.vector AS embedding
            """

    @staticmethod
    def store() -> LiteralString:
        return """
            MERGE (e:EmbeddingCache {cache_key: $key, model: $model})
            ON CREATE SET e.hit_count = 0
            SET e.vector = $embedding,
                e.dimensions = $dimensions,
                e.created = datetime(),
                e.text_preview = LEFT($text, 100)
            """
