from __future__ import annotations

from datetime import UTC, date, datetime

import pytest

from nexaconnect.adapter.base import UserProfile
from nexaconnect.adapter.supabase import SupabaseAdapter
from nexaconnect.exceptions import AuthError, NotFoundError, RemoteError, ValidationError
from nexaconnect.models import Booking, EnquiryMessage, Location

BASE_URL = "https://project.supabase.co"

PROVIDER_ROW = {
    "id": "p1",
    "user_id": "user-1",
    "name": "Sunshine Support Services",
    "tier": "premium",
    "verified": True,
    "categories": ["daily-living"],
    "suburb": "Newcastle",
    "state": "NSW",
    "rating": 4.8,
    "response_rate": 98,
    "wait_time": "1-2 weeks",
}

ENQUIRY_ROW = {
    "id": "e1",
    "provider_id": "p1",
    "participant_id": "u1",
    "status": "active",
    "messages": [{"from": "participant", "text": "Hi", "date": "2025-12-10", "time": "10:30 AM"}],
}


class _FakeResponse:
    def __init__(self, *, status: int = 200, json_data: object | None = None, text_data: str = "") -> None:
        self.status = status
        self._json_data = json_data
        self._text_data = text_data

    async def json(self) -> object:
        return self._json_data

    async def text(self) -> str:
        return self._text_data


class _FakeRequestContext:
    def __init__(self, response: _FakeResponse) -> None:
        self._response = response

    async def __aenter__(self) -> _FakeResponse:
        return self._response

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class _SequenceSession:
    def __init__(self, results: list[object]) -> None:
        self._results = results
        self.requests: list[tuple[str, str, dict]] = []

    def request(self, method: str, url: str, **kwargs) -> _FakeRequestContext:
        self.requests.append((method, url, kwargs))
        result = self._results[len(self.requests) - 1]
        if isinstance(result, Exception):
            raise result
        return _FakeRequestContext(result)


def _adapter(session: _SequenceSession, *, access_token: str | None = None) -> SupabaseAdapter:
    return SupabaseAdapter(
        session,  # type: ignore[arg-type]
        base_url=BASE_URL,
        anon_key="anon-key",
        access_token=access_token,
    )


def test_anon_key_is_required() -> None:
    with pytest.raises(ValidationError):
        SupabaseAdapter(_SequenceSession([]), base_url=BASE_URL, anon_key="")  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_sign_in_stores_access_token() -> None:
    session = _SequenceSession(
        [
            _FakeResponse(
                json_data={
                    "access_token": "token-1",
                    "refresh_token": "refresh-1",
                    "user": {"id": "user-1", "email": "sarah@example.com"},
                }
            )
        ]
    )
    adapter = _adapter(session)
    auth = await adapter.sign_in("sarah@example.com", "secret")

    assert auth.user_id == "user-1"
    assert auth.refresh_token == "refresh-1"
    assert adapter.access_token == "token-1"
    method, url, kwargs = session.requests[0]
    assert (method, url) == ("POST", f"{BASE_URL}/auth/v1/token")
    assert kwargs["params"] == {"grant_type": "password"}
    assert kwargs["headers"]["apikey"] == "anon-key"
    assert kwargs["headers"]["Authorization"] == "Bearer anon-key"


@pytest.mark.asyncio
async def test_sign_in_rejects_bad_credentials() -> None:
    adapter = _adapter(_SequenceSession([_FakeResponse(status=400, text_data="invalid_grant")]))
    with pytest.raises(RemoteError):
        await adapter.sign_in("sarah@example.com", "wrong")
    assert adapter.access_token is None


@pytest.mark.asyncio
async def test_sign_up_sends_metadata() -> None:
    session = _SequenceSession([_FakeResponse(json_data={"id": "user-2", "email": "tom@example.com"})])
    adapter = _adapter(session)
    auth = await adapter.sign_up("tom@example.com", "secret", {"role": "participant"})

    assert auth.user_id == "user-2"
    assert auth.access_token is None
    assert session.requests[0][2]["json"]["data"] == {"role": "participant"}


@pytest.mark.asyncio
async def test_sign_out_clears_token_even_on_error() -> None:
    adapter = _adapter(_SequenceSession([_FakeResponse(status=500)]), access_token="token-1")
    with pytest.raises(RemoteError):
        await adapter.sign_out()
    assert adapter.access_token is None


@pytest.mark.asyncio
async def test_user_profile_round_trip() -> None:
    session = _SequenceSession(
        [
            _FakeResponse(json_data=[{"id": "user-1", "role": "provider", "name": "Sunshine", "tier": "Premium"}]),
            _FakeResponse(json_data=[]),
            _FakeResponse(json_data=[{"id": "user-3", "role": "participant", "email": "a@b.c"}]),
        ]
    )
    adapter = _adapter(session, access_token="token-1")

    profile = await adapter.fetch_user_profile("user-1")
    assert profile == UserProfile(user_id="user-1", role="provider", name="Sunshine", tier="premium")
    assert await adapter.fetch_user_profile("user-2") is None
    created = await adapter.create_user_profile(UserProfile(user_id="user-3", role="participant", email="a@b.c"))
    assert created.email == "a@b.c"
    _, _, kwargs = session.requests[0]
    assert kwargs["params"] == {"select": "*", "id": "eq.user-1"}
    assert kwargs["headers"]["Authorization"] == "Bearer token-1"
    assert session.requests[2][2]["headers"]["Prefer"] == "return=representation"


@pytest.mark.asyncio
async def test_user_profile_invalid_role() -> None:
    adapter = _adapter(_SequenceSession([_FakeResponse(json_data=[{"id": "user-1", "role": "owner"}])]))
    with pytest.raises(RemoteError):
        await adapter.fetch_user_profile("user-1")


@pytest.mark.asyncio
async def test_fetch_providers() -> None:
    session = _SequenceSession([_FakeResponse(json_data=[PROVIDER_ROW, "junk"])])
    adapter = _adapter(session)
    providers = await adapter.fetch_providers()

    assert [provider.id for provider in providers] == ["p1"]
    assert providers[0].location == Location(suburb="Newcastle", state="NSW")
    method, url, kwargs = session.requests[0]
    assert (method, url) == ("GET", f"{BASE_URL}/rest/v1/providers")
    assert kwargs["params"] == {"select": "*", "order": "created_at.desc"}


@pytest.mark.asyncio
async def test_fetch_providers_rejects_non_list() -> None:
    adapter = _adapter(_SequenceSession([_FakeResponse(json_data="oops")]))
    with pytest.raises(RemoteError):
        await adapter.fetch_providers()


@pytest.mark.asyncio
async def test_fetch_provider_by_id() -> None:
    session = _SequenceSession([_FakeResponse(json_data=[PROVIDER_ROW]), _FakeResponse(json_data=[])])
    adapter = _adapter(session)
    provider = await adapter.fetch_provider("p1")

    assert provider is not None
    assert provider.tier == "premium"
    assert session.requests[0][2]["params"]["id"] == "eq.p1"
    assert await adapter.fetch_provider("p404") is None
    with pytest.raises(ValidationError):
        await adapter.fetch_provider(" ")


@pytest.mark.asyncio
async def test_fetch_provider_by_user_id_missing() -> None:
    session = _SequenceSession([_FakeResponse(json_data=[])])
    adapter = _adapter(session)
    assert await adapter.fetch_provider_by_user_id("user-9") is None
    assert session.requests[0][2]["params"]["user_id"] == "eq.user-9"


@pytest.mark.asyncio
async def test_update_provider_flattens_location() -> None:
    session = _SequenceSession([_FakeResponse(json_data=[{**PROVIDER_ROW, "suburb": "Maitland"}])])
    adapter = _adapter(session, access_token="token-1")
    provider = await adapter.update_provider(
        "p1",
        {"id": "p9", "location": Location(suburb="Maitland", state="NSW"), "features": ("Parking",)},
    )

    assert provider.location.suburb == "Maitland"
    method, _, kwargs = session.requests[0]
    assert method == "PATCH"
    assert kwargs["params"] == {"id": "eq.p1"}
    assert kwargs["json"] == {"suburb": "Maitland", "state": "NSW", "postcode": "", "features": ["Parking"]}


@pytest.mark.asyncio
async def test_update_provider_missing_row() -> None:
    adapter = _adapter(_SequenceSession([_FakeResponse(json_data=[])]), access_token="token-1")
    with pytest.raises(NotFoundError):
        await adapter.update_provider("p404", {"name": "Ghost"})


@pytest.mark.asyncio
async def test_update_provider_requires_changes() -> None:
    adapter = _adapter(_SequenceSession([]), access_token="token-1")
    with pytest.raises(ValidationError):
        await adapter.update_provider("p1", {"id": "p1", "bogus": True})


@pytest.mark.asyncio
async def test_update_provider_billing() -> None:
    session = _SequenceSession([_FakeResponse(status=204)])
    adapter = _adapter(session, access_token="token-1")
    await adapter.update_provider_billing("p1", stripe_subscription_id="sub_1", tier="Professional")

    _, _, kwargs = session.requests[0]
    assert kwargs["json"] == {"stripe_subscription_id": "sub_1", "tier": "pro"}
    assert kwargs["headers"]["Prefer"] == "return=minimal"
    await adapter.update_provider_billing("p1")
    assert len(session.requests) == 1
    with pytest.raises(ValidationError):
        await adapter.update_provider_billing("p1", tier="gold")


@pytest.mark.asyncio
async def test_reply_enquiry_appends_message() -> None:
    sent_at = datetime(2025, 12, 10, 11, 45, tzinfo=UTC)
    updated_row = {
        **ENQUIRY_ROW,
        "messages": [
            *ENQUIRY_ROW["messages"],
            {"from": "provider", "text": "Sure", "date": "2025-12-10", "time": "11:45 AM"},
        ],
    }
    session = _SequenceSession(
        [
            _FakeResponse(json_data=[{"messages": ENQUIRY_ROW["messages"]}]),
            _FakeResponse(json_data=[updated_row]),
        ]
    )
    adapter = _adapter(session, access_token="token-1")
    enquiry = await adapter.reply_enquiry("e1", EnquiryMessage(sender="provider", text="Sure", sent_at=sent_at))

    assert [message.text for message in enquiry.messages] == ["Hi", "Sure"]
    assert session.requests[0][2]["params"] == {"select": "messages", "id": "eq.e1"}
    patched = session.requests[1][2]["json"]["messages"]
    assert patched[-1] == {
        "from": "provider",
        "text": "Sure",
        "date": "2025-12-10",
        "time": "11:45 AM",
        "sent_at": "2025-12-10T11:45:00Z",
    }


@pytest.mark.asyncio
async def test_reply_enquiry_missing() -> None:
    adapter = _adapter(_SequenceSession([_FakeResponse(json_data=[])]), access_token="token-1")
    with pytest.raises(NotFoundError):
        await adapter.reply_enquiry(
            "e404",
            EnquiryMessage(sender="provider", text="?", sent_at=datetime(2025, 1, 1, tzinfo=UTC)),
        )


@pytest.mark.asyncio
async def test_close_enquiry_uses_minimal_return() -> None:
    session = _SequenceSession([_FakeResponse(status=204)])
    adapter = _adapter(session, access_token="token-1")
    assert await adapter.close_enquiry("e1") is None
    _, _, kwargs = session.requests[0]
    assert kwargs["json"] == {"status": "closed"}
    assert kwargs["headers"]["Prefer"] == "return=minimal"


@pytest.mark.asyncio
async def test_create_booking_strips_server_columns() -> None:
    row = {
        "id": "b16",
        "provider_id": "p1",
        "participant_id": "u1",
        "service": "Support",
        "date": "2026-01-06",
        "status": "pending",
        "created_at": "2025-12-01T09:00:00Z",
    }
    session = _SequenceSession([_FakeResponse(status=201, json_data=[row])])
    adapter = _adapter(session, access_token="token-1")
    booking = await adapter.create_booking(
        Booking(id="", provider_id="p1", participant_id="u1", service="Support", date=date(2026, 1, 6), status="confirmed")
    )

    assert booking.id == "b16"
    assert booking.created_at == datetime(2025, 12, 1, 9, 0, tzinfo=UTC)
    sent = session.requests[0][2]["json"]
    assert "id" not in sent
    assert "created_at" not in sent
    assert sent["status"] == "pending"
    assert sent["date"] == "2026-01-06"


@pytest.mark.asyncio
async def test_update_booking_only_sends_known_columns() -> None:
    row = {"id": "b1", "provider_id": "p1", "participant_id": "u1", "status": "confirmed"}
    session = _SequenceSession([_FakeResponse(json_data=[row])])
    adapter = _adapter(session, access_token="token-1")
    booking = await adapter.update_booking("b1", {"status": "confirmed", "provider_id": "p2"})
    assert booking.status == "confirmed"
    assert session.requests[0][2]["json"] == {"status": "confirmed"}


@pytest.mark.asyncio
async def test_respond_to_review() -> None:
    row = {
        "id": "r3",
        "provider_id": "p1",
        "participant_id": "u1",
        "rating": 4,
        "text": "Good",
        "created_at": "2025-11-01",
        "response": "Thanks",
        "response_date": "2025-11-21",
    }
    session = _SequenceSession([_FakeResponse(json_data=[row])])
    adapter = _adapter(session, access_token="token-1")
    review = await adapter.respond_to_review("r3", "Thanks", date(2025, 11, 21))
    assert review.response_date == date(2025, 11, 21)
    assert session.requests[0][2]["json"] == {"response": "Thanks", "response_date": "2025-11-21"}


@pytest.mark.asyncio
async def test_fetch_reviews_for_provider() -> None:
    session = _SequenceSession([_FakeResponse(json_data=[])])
    adapter = _adapter(session)
    assert await adapter.fetch_reviews("p1") == []
    assert session.requests[0][2]["params"] == {
        "select": "*",
        "provider_id": "eq.p1",
        "order": "created_at.desc",
    }


@pytest.mark.asyncio
async def test_invoke_function_requires_token() -> None:
    adapter = _adapter(_SequenceSession([]))
    with pytest.raises(AuthError):
        await adapter.invoke_function("create-checkout", {})


@pytest.mark.asyncio
async def test_invoke_function() -> None:
    session = _SequenceSession([_FakeResponse(json_data={"url": "https://checkout.example/1"})])
    adapter = _adapter(session, access_token="token-1")
    data = await adapter.invoke_function("create-checkout", {"providerId": "p1"})
    assert data == {"url": "https://checkout.example/1"}
    method, url, kwargs = session.requests[0]
    assert (method, url) == ("POST", f"{BASE_URL}/functions/v1/create-checkout")
    assert kwargs["headers"]["Authorization"] == "Bearer token-1"
