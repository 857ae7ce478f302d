"""Audit logging of single-shot completions: usage analytics and request records."""

import asyncio
from typing import Any

from memory_gateway.core.base import ErrorLevel
from memory_gateway.core.decorators import with_error_handling
from memory_gateway.core.logging import get_logger
from memory_gateway.domain.models import Account, RequestRecord, UsageEvent
from memory_gateway.infrastructure.analytics import AnalyticsClient
from memory_gateway.infrastructure.repositories.request_log import RequestLogRepository
from memory_gateway.services.accounts import AccountResolver
from memory_gateway.services.forwarder import CompletionResult

logger = get_logger(__name__)


class AuditLogger:
    """Emits the usage event and persists the request record for one completion.

    Both sub-steps run concurrently and fail independently; nothing raised
    here reaches the caller.
    """

    def __init__(
        self,
        analytics: AnalyticsClient,
        request_log: RequestLogRepository,
        accounts: AccountResolver,
        token_price: float = 0.0001,
    ):
        self.analytics = analytics
        self.request_log = request_log
        self.accounts = accounts
        self.token_price = token_price

    def usage_event(self, model: str, total_tokens: int, user_id: str) -> UsageEvent:
        return UsageEvent(
            model=model,
            num_tokens=total_tokens,
            price=total_tokens * self.token_price,
            user_id=user_id,
        )

    @with_error_handling(error_level=ErrorLevel.WARNING, reraise=False)
    async def _emit_usage(self, event: UsageEvent) -> None:
        await self.analytics.send(event)

    @with_error_handling(error_level=ErrorLevel.WARNING, reraise=False)
    async def _store_record(self, record: RequestRecord) -> None:
        await self.request_log.insert(record)

    async def record(
        self,
        payload: dict[str, Any],
        result: CompletionResult,
        api_key: str | None,
        account: Account | None = None,
    ) -> None:
        """Audit a forwarded request and its completion.

        ``account`` is resolved from ``api_key`` when the caller has not
        already done so; without an account nothing is recorded.
        """
        if account is None:
            try:
                account = await self.accounts.resolve(api_key)
            except Exception as e:
                logger.warning("Skipping audit, account unresolved", error=str(e), error_type=type(e).__name__)
                return

        model = str(payload.get("model", ""))
        tokens = result.total_tokens
        await asyncio.gather(
            self._emit_usage(self.usage_event(model, tokens, account.id)),
            self._store_record(
                RequestRecord(
                    model=model,
                    request=payload,
                    response=result.response,
                    num_tokens=tokens,
                    duration_ms=result.duration_ms,
                    user_id=account.id,
                )
            ),
        )
        logger.info("Audit recorded", model=model, num_tokens=tokens)
