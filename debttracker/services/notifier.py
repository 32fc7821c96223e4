"""Slack Web API notifier.

Posts messages with ``chat.postMessage`` and, when a reaction hint is
given, pre-adds that reaction to the posted message with ``reactions.add``
so the recipient only has to click it.
"""

import logging

import httpx

logger = logging.getLogger("debttracker.services.notifier")


class SlackNotifier:
    """Fire-and-forget message delivery through the Slack Web API."""

    def __init__(
        self,
        token: str,
        base_url: str = "https://slack.com/api",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Authorization": f"Bearer {token}"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str, payload: dict) -> dict:
        """Call a Web API method, raising on HTTP or API-level errors."""
        response = await self._client.post(f"/{method}", json=payload)
        response.raise_for_status()
        data = response.json()
        if not data.get("ok", False):
            raise httpx.HTTPError(f"{method} failed: {data.get('error', 'unknown error')}")
        return data

    async def send(
        self,
        transport_id: str,
        text: str,
        reaction_hint: str = "",
        thread_message_id: str = "",
    ) -> None:
        """Send ``text`` to a user or channel. Errors are logged, not raised."""
        payload = {"channel": transport_id, "text": text}
        if thread_message_id:
            payload["thread_ts"] = thread_message_id

        try:
            posted = await self._call("chat.postMessage", payload)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Failed sending message to %s: %s", transport_id, str(e))
            return

        if not reaction_hint:
            return

        try:
            await self._call(
                "reactions.add",
                {
                    "channel": posted.get("channel", transport_id),
                    "timestamp": posted.get("ts", ""),
                    "name": reaction_hint,
                },
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                "Failed adding :%s: reaction to message for %s: %s",
                reaction_hint,
                transport_id,
                str(e),
            )
