"""Account resolution for access keys."""

from memory_gateway.core.base import ResourceErrorDetails
from memory_gateway.core.errors import NotFoundError
from memory_gateway.domain.models import Account
from memory_gateway.infrastructure.repositories.account import AccountRepository


class AccountResolver:
    """Resolves access keys to accounts, raising instead of returning None."""

    def __init__(self, accounts: AccountRepository):
        self.accounts = accounts

    async def resolve(self, api_key: str | None) -> Account:
        """Look up the account behind an access key.

        Raises:
            NotFoundError: The key is missing or unknown
        """
        account = await self.accounts.get_by_api_key(api_key) if api_key else None
        if account is None:
            raise NotFoundError(
                "Unknown or missing access key",
                details=ResourceErrorDetails(
                    source="AccountResolver",
                    operation="resolve",
                    resource_type="account",
                    action="read",
                ),
            )
        return account
