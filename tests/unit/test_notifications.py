"""Tests for the notifier's log fallback and provider error handling."""

import logging

import httpx
import pytest

from authsome.notifications.service import ChannelType, Notifier


class TestNotifier:
    async def test_no_provider_redacts_body(self, caplog):
        notifier = Notifier()
        with caplog.at_level(logging.INFO, logger="authsome.notifications.service"):
            delivered = await notifier.send_notification(
                ChannelType.EMAIL, "a@example.com", "Hi", "Your code is: 1234"
            )
        assert delivered is False
        assert "1234" not in caplog.text
        assert "a@example.com" in caplog.text

    async def test_development_logs_body(self, caplog):
        notifier = Notifier(log_body=True)
        with caplog.at_level(logging.INFO, logger="authsome.notifications.service"):
            delivered = await notifier.send_notification(
                ChannelType.EMAIL, "a@example.com", "Hi", "Your code is: 1234"
            )
        assert delivered is False
        assert "1234" in caplog.text

    async def test_phone_channel_is_log_only(self):
        notifier = Notifier(provider="sendgrid", api_key="k")
        assert await notifier.send_notification(
            ChannelType.PHONE, "+15550100", "Hi", "body"
        ) is False

    async def test_provider_transport_error_returns_false(self, monkeypatch):
        async def boom(self, *args, **kwargs):
            raise httpx.ConnectError("down")

        monkeypatch.setattr(httpx.AsyncClient, "post", boom)
        notifier = Notifier(provider="resend", api_key="k")
        assert await notifier.send_notification(
            ChannelType.EMAIL, "a@example.com", "Hi", "body"
        ) is False

    async def test_sendgrid_accepted(self, monkeypatch):
        async def accepted(self, url, **kwargs):
            return httpx.Response(202, request=httpx.Request("POST", url))

        monkeypatch.setattr(httpx.AsyncClient, "post", accepted)
        notifier = Notifier(provider="SendGrid", api_key="k")
        assert await notifier.send_notification(
            ChannelType.EMAIL, "a@example.com", "Hi", "body"
        ) is True

    async def test_deps_log_body_only_in_development(self, monkeypatch):
        from authsome import deps
        from authsome.common.config import get_settings

        monkeypatch.setenv("AUTHSOME_ENVIRONMENT", "staging")
        monkeypatch.setenv("AUTHSOME_SECRET_KEY", "x" * 48)
        monkeypatch.setenv("AUTHSOME_ENCRYPTION_KEY", "y" * 48)
        get_settings.cache_clear()
        deps.reset_singletons()
        try:
            assert deps.get_notifier().log_body is False
        finally:
            get_settings.cache_clear()
            deps.reset_singletons()
