import pytest

from watchlist_core.schemas.movie import InsertMovie
from watchlist_core.schemas.platform import InsertPlatform, PlatformUpdate
from watchlist_core.schemas.user import InsertUser
from watchlist_core.schemas.watchlist import InsertWatchlistEntry
from watchlist_core.storage.errors import QueryFailed

pytestmark = pytest.mark.anyio


@pytest.fixture
async def user(storage):
    return await storage.create_user(InsertUser(username="alice", password="x"))


async def test_create_and_list_platforms(storage, user):
    netflix = await storage.create_platform(InsertPlatform(user_id=user.id, name="Netflix", is_default=True))
    await storage.create_platform(InsertPlatform(user_id=user.id, name="Cinema"))

    platforms = await storage.get_platforms(user.id)

    assert [p.name for p in platforms] == ["Netflix", "Cinema"]
    assert platforms[0].is_default is True
    assert platforms[1].is_default is False
    assert (await storage.get_platform(netflix.id)).name == "Netflix"


async def test_platforms_are_scoped_to_their_user(storage, user):
    other = await storage.create_user(InsertUser(username="bob", password="x"))
    await storage.create_platform(InsertPlatform(user_id=other.id, name="Hulu"))

    assert await storage.get_platforms(user.id) == []


async def test_update_platform(storage, user):
    platform = await storage.create_platform(InsertPlatform(user_id=user.id, name="Prime"))

    updated = await storage.update_platform(platform.id, PlatformUpdate(name="Prime Video", logo_url="/prime.png"))

    assert updated.name == "Prime Video"
    assert updated.logo_url == "/prime.png"
    assert await storage.update_platform(9999, PlatformUpdate(name="x")) is None


async def test_delete_platform(storage, user):
    platform = await storage.create_platform(InsertPlatform(user_id=user.id, name="Disney+"))

    assert await storage.delete_platform(platform.id) is True
    assert await storage.get_platform(platform.id) is None
    assert await storage.delete_platform(platform.id) is False


async def test_deleting_platform_clears_it_from_entries(storage, user):
    platform = await storage.create_platform(InsertPlatform(user_id=user.id, name="Netflix"))
    movie = await storage.create_movie(InsertMovie(tmdb_id=550, title="Fight Club"))
    entry = await storage.create_watchlist_entry(
        InsertWatchlistEntry(user_id=user.id, movie_id=movie.id, platform_id=platform.id)
    )
    assert entry.platform_id == platform.id

    assert await storage.delete_platform(platform.id) is True

    found = await storage.get_watchlist_entry(entry.id)
    assert found is not None
    assert found.platform_id is None


async def test_platform_for_unknown_user_is_rejected(storage):
    with pytest.raises(QueryFailed):
        await storage.create_platform(InsertPlatform(user_id=999, name="Netflix"))
