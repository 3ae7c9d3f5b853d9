import httpx
import pytest

from biztech.client.api import ApiError, MarketplaceClient, SessionExpiredError
from biztech.client.session import FileSessionStore, InMemorySessionStore, Session
from biztech.main import app
from tests.fixtures_seed import PASSWORD, make_listing


@pytest.fixture
def api(client):
    # reuse the app wired to the test database
    return MarketplaceClient("http://test/v1", transport=httpx.ASGITransport(app=app))


async def test_login_stores_session_and_logout_clears(api, buyer):
    session = await api.login(buyer.email, PASSWORD)
    assert session.role == "buyer"
    assert api.session.token == session.token

    me = await api.me()
    assert me["email"] == buyer.email

    await api.logout()
    assert api.session is None
    await api.aclose()


async def test_any_401_purges_session(api, buyer):
    api.store.save(Session(token="stale-token", account={"role": "buyer"}))

    with pytest.raises(SessionExpiredError) as exc:
        await api.me()
    assert exc.value.status_code == 401
    assert api.session is None
    await api.aclose()


async def test_revoked_token_purges_session(api, buyer):
    await api.login(buyer.email, PASSWORD)
    token = api.session.token
    await api.logout()

    api.store.save(Session(token=token, account={}))
    with pytest.raises(SessionExpiredError):
        await api.search_listings()
    assert api.session is None
    await api.aclose()


async def test_other_errors_keep_session(api, db_session, buyer, seller, agent):
    listing = await make_listing(db_session, seller, status="active", agent=agent)
    await api.login(buyer.email, PASSWORD)

    await api.create_lead(listing.id, "hello")
    with pytest.raises(ApiError) as exc:
        await api.create_lead(listing.id, "hello again")
    assert exc.value.status_code == 409
    assert exc.value.code == "duplicate_enquiry"
    assert api.session is not None

    enquiries = await api.my_enquiries()
    assert len(enquiries) == 1
    await api.aclose()


async def test_search_drops_empty_filters(api, db_session, seller, agent):
    await make_listing(db_session, seller, status="active", agent=agent, region="Ajman")
    results = await api.search_listings(region="Ajman", tier=None)
    assert len(results) == 1
    assert results[0]["private_data"] is None
    await api.aclose()


def test_file_session_store(tmp_path):
    store = FileSessionStore(tmp_path / "session.json")
    assert store.load() is None

    store.save(Session(token="t1", account={"role": "seller"}))
    assert FileSessionStore(tmp_path / "session.json").load() == Session(token="t1", account={"role": "seller"})

    store.clear()
    assert store.load() is None
    store.clear()

    (tmp_path / "session.json").write_text("{not json", encoding="utf-8")
    assert store.load() is None


def test_in_memory_store():
    store = InMemorySessionStore()
    store.save(Session(token="t"))
    assert store.load().token == "t"
    store.clear()
    assert store.load() is None
