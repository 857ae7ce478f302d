"""Tests for request-scoped log context."""

import pytest

from memory_gateway.core.logging import (
    bind_request_context,
    clear_log_context,
    get_log_context,
    update_log_context,
)
from memory_gateway.services.background import DeferredWorkSupervisor


class TestLogContext:
    def teardown_method(self):
        clear_log_context()

    def test_bind_skips_empty_fields(self):
        request_id = bind_request_context(store_id="store-1", context_id=None)

        assert get_log_context() == {"request_id": request_id, "store_id": "store-1"}

    def test_bind_replaces_previous_request(self):
        bind_request_context(request_id="first", store_id="store-1")
        bind_request_context(request_id="second")

        assert get_log_context() == {"request_id": "second"}

    def test_update_adds_fields(self):
        bind_request_context(request_id="req-1")
        update_log_context(user_id="user-1")

        assert get_log_context()["user_id"] == "user-1"

    @pytest.mark.asyncio
    async def test_deferred_work_inherits_request_context(self):
        supervisor = DeferredWorkSupervisor()
        bind_request_context(request_id="req-42", store_id="store-1")

        async def capture():
            return get_log_context()

        task = supervisor.submit(capture)
        bind_request_context(request_id="req-43")

        assert (await task)["request_id"] == "req-42"
