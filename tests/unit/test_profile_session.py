import asyncio
import threading

import pytest

from allme.application.identity import StaticIdentityProvider
from allme.application.profile_session import ProfileSession, SessionState
from allme.domain.entities.identity import Identity, SignedIn, SignedOut, TokenRefreshed
from allme.domain.entities.plan import Plan
from allme.domain.entities.profile import ProfileEntity
from allme.domain.entities.theme import CustomColors, CustomTheme, NamedTheme, ThemeName
from allme.domain.errors import PlanLimitError, ValidationError
from allme.infrastructure.database.repositories import profile_repository
from allme.infrastructure.database.repositories.link_repository import LinkRepository
from allme.infrastructure.database.repositories.profile_repository import ProfileRepository

from fakes import FakeLinkRepo, FakeProfileRepo


ALEX = Identity(id="user-alex", email="alex@example.com", metadata={})


def make_session(identity=ALEX, profiles=None, links=None, timeout=5):
    provider = StaticIdentityProvider(identity)
    session = ProfileSession(
        provider,
        profiles or ProfileRepository(None),
        links or LinkRepository(None),
        timeout=timeout,
    )
    return session, provider


def test_no_identity_stays_unauthenticated():
    session, _ = make_session(identity=None)
    asyncio.run(session.start())
    assert session.state is SessionState.UNAUTHENTICATED
    assert session.profile.is_placeholder
    assert session.links.items == []


def test_first_sign_in_provisions_profile():
    session, _ = make_session()
    asyncio.run(session.start())

    assert session.is_ready
    assert session.profile.id == "user-alex"
    assert session.profile.username == "alex"
    assert session.profile.display_name == "alex"
    assert session.profile.plan is Plan.FREE
    assert session.profile.theme == NamedTheme(ThemeName.LIGHT)

    stored = ProfileRepository(None).get_by_username("alex")
    assert stored is not None and stored.id == "user-alex"


def test_provisioning_prefers_metadata_names():
    identity = Identity(
        id="user-9",
        email="someone@example.com",
        metadata={"username": "Jane_Doe", "full_name": "Jane Doe", "avatar_url": "https://img/a.png"},
    )
    session, _ = make_session(identity=identity)
    asyncio.run(session.start())

    assert session.profile.username == "jane_doe"
    assert session.profile.display_name == "Jane Doe"
    assert session.avatar_preview == "https://img/a.png"


def test_provisioning_falls_back_when_username_taken():
    repo = ProfileRepository(None)
    repo.upsert("someone-else", {"username": "alex"})
    session, _ = make_session(profiles=repo)
    asyncio.run(session.start())
    assert session.profile.username == "user_user-ale"


def test_unreachable_store_yields_placeholder_profile():
    profiles = FakeProfileRepo()
    profiles.fail.update({"get", "get_by_username", "upsert"})
    links = FakeLinkRepo()
    links.fail.add("list_by_profile")
    session, _ = make_session(profiles=profiles, links=links)

    asyncio.run(session.start())

    assert session.is_ready
    assert session.profile.id == "user-alex"
    assert session.profile.username == ""
    assert session.links.items == []


def test_sign_out_resets_even_when_provider_fails():
    session, provider = make_session()

    async def broken_sign_out():
        raise RuntimeError("network down")

    provider.sign_out = broken_sign_out

    async def scenario():
        await session.start()
        await session.links.add("A", "https://a.example")
        await session.sign_out()

    asyncio.run(scenario())
    assert session.state is SessionState.UNAUTHENTICATED
    assert session.user_id is None
    assert session.profile.is_placeholder
    assert session.links.items == []
    assert session.avatar_preview is None


def test_signed_out_event_resets_state():
    session, provider = make_session()

    async def scenario():
        await session.start()
        await provider.sign_out()

    asyncio.run(scenario())
    assert session.state is SessionState.UNAUTHENTICATED


def test_token_refresh_for_same_user_updates_in_place():
    session, provider = make_session()

    async def scenario():
        await session.start()
        profile_repository._MEM_PROFILES["user-alex"]["bio"] = "edited elsewhere"
        await provider.emit(TokenRefreshed(ALEX))

    asyncio.run(scenario())
    assert session.is_ready
    assert session.profile.bio == "edited elsewhere"


def test_sign_in_as_other_user_reloads():
    session, provider = make_session()
    other = Identity(id="user-bea", email="bea@example.com")

    async def scenario():
        await session.start()
        await provider.emit(SignedIn(other))

    asyncio.run(scenario())
    assert session.user_id == "user-bea"
    assert session.profile.username == "bea"


def test_closed_session_ignores_events():
    session, provider = make_session()

    async def scenario():
        async with session:
            pass
        await provider.emit(SignedOut())

    asyncio.run(scenario())
    assert session.is_ready


def test_update_profile_local_does_not_persist():
    profiles = FakeProfileRepo()
    session, _ = make_session(profiles=profiles)
    asyncio.run(session.start())
    profiles.calls.clear()

    session.update_profile_local({"bio": "  hello  ", "id": "hijack"})

    assert session.profile.bio == "hello"
    assert session.profile.id == "user-alex"
    assert profiles.calls == []


def test_update_profile_persists_changes():
    session, _ = make_session()

    async def scenario():
        await session.start()
        await session.update_profile({"display_name": "Alex K", "bio": "   "})

    asyncio.run(scenario())
    stored = ProfileRepository(None).get("user-alex")
    assert stored.display_name == "Alex K"
    assert stored.bio is None


def test_update_profile_rejects_unknown_fields():
    session, _ = make_session()
    asyncio.run(session.start())
    with pytest.raises(ValidationError):
        asyncio.run(session.update_profile({"favourite_colour": "red"}))


def test_theme_gate_follows_plan():
    session, _ = make_session()
    asyncio.run(session.start())

    with pytest.raises(PlanLimitError) as info:
        asyncio.run(session.update_profile({"theme": NamedTheme(ThemeName.OCEAN)}))
    assert info.value.required_plan == "pro"
    assert session.profile.theme == NamedTheme(ThemeName.LIGHT)

    asyncio.run(session.update_profile({"theme": NamedTheme(ThemeName.DARK)}))
    assert session.profile.theme == NamedTheme(ThemeName.DARK)


def test_custom_theme_needs_business():
    session, _ = make_session()
    custom = CustomTheme(CustomColors("#000000", "#ffffff", "#111111", "#eeeeee"))

    async def scenario():
        await session.start()
        profile_repository._MEM_PROFILES["user-alex"]["plan"] = "pro"
        await session.refresh_data()
        with pytest.raises(PlanLimitError) as info:
            await session.update_profile({"theme": custom})
        assert info.value.required_plan == "business"
        profile_repository._MEM_PROFILES["user-alex"]["plan"] = "business"
        await session.refresh_data()
        await session.update_profile({"theme": custom})

    asyncio.run(scenario())
    assert ProfileRepository(None).get("user-alex").theme == custom


def test_short_username_needs_pro():
    session, _ = make_session()
    asyncio.run(session.start())
    with pytest.raises(PlanLimitError):
        asyncio.run(session.update_profile({"username": "abc"}))
    with pytest.raises(ValidationError):
        asyncio.run(session.update_profile({"username": "admin"}))
    asyncio.run(session.update_profile({"username": "Alex_K"}))
    assert session.profile.username == "alex_k"


def test_plan_limits_follow_profile_plan():
    session, _ = make_session()
    asyncio.run(session.start())
    assert session.plan_limits.max_links == 5


def test_sign_out_during_load_wins():
    profiles = FakeProfileRepo()
    profiles.rows["user-alex"] = ProfileEntity(id="user-alex", username="alex")
    profiles.get_gate = threading.Event()
    links = FakeLinkRepo()
    links.seed("user-alex", "A")
    session, _ = make_session(profiles=profiles, links=links)

    async def scenario():
        loading = asyncio.create_task(session.start())
        await asyncio.sleep(0.05)
        assert session.is_loading
        await session.sign_out()
        profiles.get_gate.set()
        await loading

    asyncio.run(scenario())
    assert session.state is SessionState.UNAUTHENTICATED
    assert session.user_id is None
    assert session.profile.is_placeholder
    assert session.links.items == []


def test_hanging_store_does_not_block_loading():
    profiles = FakeProfileRepo()
    profiles.get_gate = threading.Event()
    session, _ = make_session(profiles=profiles, links=FakeLinkRepo(), timeout=0.05)

    async def scenario():
        try:
            await session.start()
        finally:
            profiles.get_gate.set()

    asyncio.run(scenario())
    assert session.is_ready
    assert session.profile.id == "user-alex"
    assert session.profile.username == ""
