"""Transaction builder backed by an HTTP calldata service."""

from __future__ import annotations

import httpx
import structlog

from lpflow.interfaces import ExecuteCall, TransactionRequest

from .encoding import build_approve_transaction

logger = structlog.get_logger()


class HttpTransactionBuilder:
    """TransactionBuilder that asks a remote service for execute calldata.

    Approvals are plain ERC20 calls and are encoded locally. The execute
    request is POSTed as JSON to `{base_url}/execute/{kind}`, and the
    service answers with `{"to": ..., "data": ..., "value": ...}`.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the builder.

        Args:
            base_url: Root URL of the calldata service
            timeout: Request timeout in seconds
            client: Shared client (one is created per request when None)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = client

    async def build_approve(self, token: str, spender: str, amount: int) -> TransactionRequest:
        return build_approve_transaction(token, spender, amount)

    async def build_execute(self, call: ExecuteCall) -> TransactionRequest:
        """Fetch execute calldata.

        Raises:
            httpx.HTTPError: If the service is unreachable or answers non-2xx
        """
        url = f"{self.base_url}/execute/{call.kind.value}"
        body = call.model_dump(mode="json", by_alias=True)

        if self.client is not None:
            response = await self.client.post(url, json=body, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=body)

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError:
            logger.warning(
                "execute_build_failed",
                kind=call.kind.value,
                status=response.status_code,
                body=response.text[:500],
            )
            raise

        data = response.json()
        return TransactionRequest(
            to=data["to"],
            data=data["data"],
            value=int(data.get("value", 0)),
        )


__all__ = ["HttpTransactionBuilder"]
