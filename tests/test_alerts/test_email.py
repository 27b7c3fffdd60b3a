"""Tests for the email alert sink — message building and SMTP mocking."""

from __future__ import annotations

import smtplib
from unittest.mock import MagicMock, patch

import pytest
from pydantic import SecretStr

from otto.alerts.email import EmailAlert
from otto.alerts.exceptions import DeliveryError
from otto.core.config import EmailAlertConfig

from tests.test_alerts.helpers import make_notification


def _config(**kw: object) -> EmailAlertConfig:
    defaults: dict[str, object] = {
        "smtp_relay": "smtp.example.com",
        "smtp_username": "otto",
        "smtp_password": SecretStr("hunter2"),
        "sender": "otto@example.com",
        "to": "ops@example.com",
    }
    defaults.update(kw)
    return EmailAlertConfig(**defaults)  # type: ignore[arg-type]


class TestBuildMessage:
    def test_headers(self) -> None:
        msg = EmailAlert(_config()).build_message(make_notification())
        assert msg["From"] == "otto@example.com"
        assert msg["To"] == "ops@example.com"
        assert msg["Subject"] == "TRIGGERED [exec]: `make` `test` got code 2"

    def test_plain_text_only(self) -> None:
        msg = EmailAlert(_config()).build_message(make_notification())
        assert not msg.is_multipart()
        assert "exit status 2" in msg.get_content()

    def test_html_alternative(self) -> None:
        n = make_notification(message_html="<p>outage</p>")
        msg = EmailAlert(_config()).build_message(n)
        assert msg.is_multipart()
        html = msg.get_body(preferencelist=("html",))
        assert html is not None
        assert "<p>outage</p>" in html.get_content()


class TestSend:
    async def test_implicit_tls_port(self) -> None:
        alert = EmailAlert(_config())
        with patch("otto.alerts.email.smtplib.SMTP_SSL") as smtp_ssl:
            server = MagicMock()
            smtp_ssl.return_value = server
            await alert.notify(make_notification())

        smtp_ssl.assert_called_once()
        assert smtp_ssl.call_args[0] == ("smtp.example.com", 465)
        server.login.assert_called_once_with("otto", "hunter2")
        server.send_message.assert_called_once()
        server.starttls.assert_not_called()

    async def test_starttls_port(self) -> None:
        alert = EmailAlert(_config(smtp_port=587, smtp_username=""))
        with patch("otto.alerts.email.smtplib.SMTP") as smtp:
            server = MagicMock()
            smtp.return_value = server
            await alert.notify(make_notification())

        server.starttls.assert_called_once()
        server.login.assert_not_called()
        server.send_message.assert_called_once()

    async def test_smtp_error_raises_delivery_error(self) -> None:
        alert = EmailAlert(_config())
        with patch("otto.alerts.email.smtplib.SMTP_SSL") as smtp_ssl:
            server = MagicMock()
            server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
            smtp_ssl.return_value = server
            with pytest.raises(DeliveryError, match="ops@example.com"):
                await alert.notify(make_notification())

    async def test_connect_error_raises_delivery_error(self) -> None:
        alert = EmailAlert(_config())
        with patch("otto.alerts.email.smtplib.SMTP_SSL", side_effect=OSError("unreachable")):
            with pytest.raises(DeliveryError):
                await alert.notify(make_notification())

    def test_target(self) -> None:
        assert EmailAlert(_config()).target == "smtp.example.com:ops@example.com"
