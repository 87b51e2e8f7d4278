"""Tests for outbound notification senders."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from sessionvault.services.notifications import (
    NoOpNotificationSender,
    WebhookNotificationSender,
    build_payload,
    get_notification_sender,
)


class TestBuildPayload:
    def test_payload_fields(self):
        payload = build_payload("user@example.com", "New sign-in", "Details")

        assert payload["recipient"] == "user@example.com"
        assert payload["subject"] == "New sign-in"
        assert payload["body"] == "Details"
        assert payload["source"] == "sessionvault"
        assert "timestamp" in payload


class TestGetNotificationSender:
    @pytest.mark.parametrize("url", [None, ""])
    def test_without_url_is_noop(self, url):
        assert isinstance(get_notification_sender(url), NoOpNotificationSender)

    def test_with_url_is_webhook(self):
        sender = get_notification_sender("https://example.com/hook")

        assert isinstance(sender, WebhookNotificationSender)
        assert sender.url == "https://example.com/hook"


class TestWebhookNotificationSender:
    def _mock_client(self, post):
        mock_client = AsyncMock()
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=False)
        mock_client.post = post
        return mock_client

    @pytest.mark.asyncio
    async def test_posts_json_payload(self):
        response = MagicMock()
        post = AsyncMock(return_value=response)

        with patch("httpx.AsyncClient") as mock_client_cls:
            mock_client_cls.return_value = self._mock_client(post)
            await WebhookNotificationSender("https://example.com/hook").send(
                "user@example.com", "Subject", "Body"
            )

        post.assert_awaited_once()
        assert post.await_args.args[0] == "https://example.com/hook"
        assert post.await_args.kwargs["json"]["subject"] == "Subject"
        response.raise_for_status.assert_called_once()

    @pytest.mark.asyncio
    async def test_network_error_propagates(self):
        post = AsyncMock(side_effect=httpx.ConnectError("refused"))

        with patch("httpx.AsyncClient") as mock_client_cls:
            mock_client_cls.return_value = self._mock_client(post)
            with pytest.raises(httpx.ConnectError):
                await WebhookNotificationSender("https://example.com/hook").send(
                    "user@example.com", "Subject", "Body"
                )

    @pytest.mark.asyncio
    async def test_noop_sender_does_nothing(self):
        # Should not raise
        await NoOpNotificationSender().send("user@example.com", "Subject", "Body")
