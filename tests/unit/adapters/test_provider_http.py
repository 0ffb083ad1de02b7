"""Unit tests – HTTP-backed channel providers, with the wire mocked by respx."""
from __future__ import annotations

import asyncio
import base64
import json
from urllib.parse import parse_qs

import httpx
import respx

from depot_notify.application.channels import EmailMessage, PushMessage, SmsMessage, WhatsAppMessage
from depot_notify.application.channels.email import (
    SendGridConfig,
    SendGridEmailProvider,
    SesConfig,
    SesEmailProvider,
)
from depot_notify.application.channels.push import FcmConfig, FcmPushProvider
from depot_notify.application.channels.sms import (
    NetGsmConfig,
    NetGsmSmsProvider,
    TwilioConfig,
    TwilioSmsProvider,
)
from depot_notify.application.channels.whatsapp import TwilioWhatsAppProvider

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
NETGSM_URL = "https://api.netgsm.com.tr/sms/rest/v2/send"
TWILIO_URL = "https://api.twilio.com/2010-04-01/Accounts/AC1/Messages.json"
FCM_URL = "https://fcm.googleapis.com/v1/projects/proj/messages:send"


def _email() -> EmailMessage:
    return EmailMessage(to="a@example.com", subject="Hi", html="<p>Hi</p>", text="Hi")


def _twilio() -> TwilioConfig:
    return TwilioConfig(account_sid="AC1", auth_token="tok", from_number="+15550001234")


# ---------------------------------------------------------------------------
# SendGrid
# ---------------------------------------------------------------------------


class TestSendGrid:
    @respx.mock
    def test_success_returns_message_id(self) -> None:
        route = respx.post(SENDGRID_URL).mock(
            return_value=httpx.Response(202, headers={"X-Message-Id": "sg-1"})
        )

        async def run() -> None:
            result = await SendGridEmailProvider(SendGridConfig(api_key="SG.key")).send(_email())
            assert result.success is True
            assert result.message_id == "sg-1"
            request = route.calls.last.request
            assert request.headers["authorization"] == "Bearer SG.key"
            body = json.loads(request.content)
            assert body["personalizations"][0]["to"] == [{"email": "a@example.com"}]
            assert [c["type"] for c in body["content"]] == ["text/html", "text/plain"]

        asyncio.run(run())

    @respx.mock
    def test_http_error_is_a_failed_result(self) -> None:
        respx.post(SENDGRID_URL).mock(return_value=httpx.Response(401, text="bad key"))

        async def run() -> None:
            result = await SendGridEmailProvider(SendGridConfig(api_key="SG.key")).send(_email())
            assert result.success is False
            assert result.error == "SendGrid API error: 401 bad key"

        asyncio.run(run())

    @respx.mock
    def test_timeout(self) -> None:
        respx.post(SENDGRID_URL).mock(side_effect=httpx.ConnectTimeout("timed out"))

        async def run() -> None:
            result = await SendGridEmailProvider(SendGridConfig(api_key="SG.key")).send(_email())
            assert result.success is False
            assert result.error == "Request timed out: timed out"

        asyncio.run(run())

    @respx.mock
    def test_uses_injected_client(self) -> None:
        respx.post(SENDGRID_URL).mock(return_value=httpx.Response(202))

        async def run() -> None:
            async with httpx.AsyncClient() as client:
                provider = SendGridEmailProvider(SendGridConfig(api_key="k"), client)
                assert (await provider.send(_email())).success is True
                assert not client.is_closed

        asyncio.run(run())


class TestSesRequest:
    def test_build_request(self) -> None:
        provider = SesEmailProvider(
            SesConfig(aws_access_key_id="AKIA", aws_secret_access_key="s", source_email="noreply@example.com")
        )
        request = provider._build_request(
            EmailMessage(to="a@example.com", subject="Hi", html="<p>Hi</p>", reply_to="ops@example.com")
        )
        assert request["Source"] == "noreply@example.com"
        assert request["Destination"] == {"ToAddresses": ["a@example.com"]}
        assert "Text" not in request["Message"]["Body"]
        assert request["ReplyToAddresses"] == ["ops@example.com"]


# ---------------------------------------------------------------------------
# NetGSM
# ---------------------------------------------------------------------------


class TestNetGsm:
    def _provider(self) -> NetGsmSmsProvider:
        return NetGsmSmsProvider(NetGsmConfig(username="user", password="pass"))

    @respx.mock
    def test_success(self) -> None:
        route = respx.post(NETGSM_URL).mock(return_value=httpx.Response(200, json={"code": "00", "jobID": "J1"}))

        async def run() -> None:
            result = await self._provider().send(SmsMessage(to="+90 555 111 22 33", message="hello"))
            assert result.success is True
            assert result.message_id == "J1"
            request = route.calls.last.request
            body = json.loads(request.content)
            assert body["msgheader"] == "DEPOT"
            assert body["messages"] == [{"msg": "hello", "no": "5551112233"}]
            expected = base64.b64encode(b"user:pass").decode()
            assert request.headers["authorization"] == f"Basic {expected}"

        asyncio.run(run())

    @respx.mock
    def test_result_code_error(self) -> None:
        respx.post(NETGSM_URL).mock(return_value=httpx.Response(200, json={"code": "30"}))

        async def run() -> None:
            result = await self._provider().send(SmsMessage(to="5551112233", message="hello"))
            assert result.success is False
            assert result.error == "NetGSM error code: 30 - Invalid phone number"

        asyncio.run(run())

    @respx.mock
    def test_bulk_is_one_request(self) -> None:
        route = respx.post(NETGSM_URL).mock(return_value=httpx.Response(200, json={"code": "00", "bulkid": 77}))

        async def run() -> None:
            bulk = await self._provider().send_bulk(
                [SmsMessage(to="05551112233", message="a"), SmsMessage(to="05552223344", message="b")]
            )
            assert bulk.success is True
            assert [r.message_id for _, r in bulk.results] == ["77", "77"]
            assert route.call_count == 1

        asyncio.run(run())

    @respx.mock
    def test_non_object_body_is_a_failed_result(self) -> None:
        respx.post(NETGSM_URL).mock(return_value=httpx.Response(200, json=["00"]))

        async def run() -> None:
            result = await self._provider().send(SmsMessage(to="5551112233", message="hello"))
            assert result.success is False
            assert result.error.startswith("NetGSM API error: unreadable response")

        asyncio.run(run())


# ---------------------------------------------------------------------------
# Twilio (SMS and WhatsApp)
# ---------------------------------------------------------------------------


class TestTwilio:
    @respx.mock
    def test_sms_success(self) -> None:
        route = respx.post(TWILIO_URL).mock(return_value=httpx.Response(201, json={"sid": "SM1"}))

        async def run() -> None:
            result = await TwilioSmsProvider(_twilio()).send(SmsMessage(to="+15557654321", message="hello"))
            assert result.success is True
            assert result.message_id == "SM1"
            form = parse_qs(route.calls.last.request.content.decode())
            assert form == {"To": ["+15557654321"], "From": ["+15550001234"], "Body": ["hello"]}

        asyncio.run(run())

    @respx.mock
    def test_sms_error_message(self) -> None:
        respx.post(TWILIO_URL).mock(return_value=httpx.Response(400, json={"message": "Invalid To"}))

        async def run() -> None:
            result = await TwilioSmsProvider(_twilio()).send(SmsMessage(to="bogus", message="hello"))
            assert result.success is False
            assert result.error == "Twilio API error: Invalid To"

        asyncio.run(run())

    @respx.mock
    def test_sms_success_with_non_json_body(self) -> None:
        respx.post(TWILIO_URL).mock(return_value=httpx.Response(201, text="<Response/>"))

        async def run() -> None:
            result = await TwilioSmsProvider(_twilio()).send(SmsMessage(to="+15557654321", message="hello"))
            assert result.success is True
            assert result.message_id is None

        asyncio.run(run())

    @respx.mock
    def test_sms_error_with_non_json_body(self) -> None:
        respx.post(TWILIO_URL).mock(return_value=httpx.Response(503, text="upstream down"))

        async def run() -> None:
            result = await TwilioSmsProvider(_twilio()).send(SmsMessage(to="+15557654321", message="hello"))
            assert result.success is False
            assert result.error == "Twilio API error: Service Unavailable"

        asyncio.run(run())

    @respx.mock
    def test_whatsapp_addresses(self) -> None:
        route = respx.post(TWILIO_URL).mock(return_value=httpx.Response(201, json={"sid": "WA1"}))

        async def run() -> None:
            result = await TwilioWhatsAppProvider(_twilio()).send(WhatsAppMessage(to="+905551112233", message="hi"))
            assert result.success is True
            form = parse_qs(route.calls.last.request.content.decode())
            assert form["To"] == ["whatsapp:+905551112233"]
            assert form["From"] == ["whatsapp:+15550001234"]

        asyncio.run(run())


# ---------------------------------------------------------------------------
# FCM
# ---------------------------------------------------------------------------


class TestFcm:
    def _provider(self) -> FcmPushProvider:
        return FcmPushProvider(FcmConfig(server_key="srv", project_id="proj"))

    @respx.mock
    def test_success(self) -> None:
        route = respx.post(FCM_URL).mock(
            return_value=httpx.Response(200, json={"name": "projects/proj/messages/1"})
        )

        async def run() -> None:
            result = await self._provider().send(
                PushMessage(token="tok", title="T", body="B", data={"bookingId": "B1", "count": 3})
            )
            assert result.success is True
            assert result.message_id == "projects/proj/messages/1"
            body = json.loads(route.calls.last.request.content)
            assert body["message"]["token"] == "tok"
            assert body["message"]["data"] == {"bookingId": "B1", "count": "3"}

        asyncio.run(run())

    @respx.mock
    def test_error_body(self) -> None:
        respx.post(FCM_URL).mock(
            return_value=httpx.Response(404, json={"error": {"message": "Requested entity was not found."}})
        )

        async def run() -> None:
            result = await self._provider().send(PushMessage(token="stale", title="T", body="B"))
            assert result.success is False
            assert result.error == "FCM API error: Requested entity was not found."

        asyncio.run(run())

    @respx.mock
    def test_list_body_falls_back_to_status(self) -> None:
        respx.post(FCM_URL).mock(return_value=httpx.Response(500, json=[{"error": "x"}]))

        async def run() -> None:
            result = await self._provider().send(PushMessage(token="tok", title="T", body="B"))
            assert result.success is False
            assert result.error == "FCM API error: 500"

        asyncio.run(run())
