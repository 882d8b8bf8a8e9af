import pytest

from watchlist_core.schemas.enums import MediaType
from watchlist_core.schemas.movie import InsertMovie

pytestmark = pytest.mark.anyio


def fight_club(**overrides):
    data = dict(tmdb_id=550, title="Fight Club", media_type="movie")
    data.update(overrides)
    return InsertMovie(**data)


async def test_create_movie_twice_returns_same_row(storage):
    first = await storage.create_movie(fight_club())
    second = await storage.create_movie(fight_club(title="Fight Club (again)"))

    assert first.id == second.id
    assert second.title == "Fight Club"
    assert (await storage.get_movie_by_tmdb_id(550)).id == first.id


async def test_movie_fields_round_trip(storage):
    created = await storage.create_movie(InsertMovie(
        tmdb_id=1399,
        title="Game of Thrones",
        overview="Seven noble families fight for control of Westeros.",
        poster_path="/poster.jpg",
        release_date="2011-04-17",
        vote_average=8.4,
        genres=["Drama", "Sci-Fi & Fantasy", "Action & Adventure"],
        media_type=MediaType.TV,
        number_of_seasons=8,
        number_of_episodes=73,
    ))

    movie = await storage.get_movie(created.id)

    assert movie.genres == ["Drama", "Sci-Fi & Fantasy", "Action & Adventure"]
    assert movie.media_type is MediaType.TV
    assert movie.vote_average == pytest.approx(8.4)
    assert movie.number_of_episodes == 73


async def test_missing_movie_is_none(storage):
    assert await storage.get_movie(999999) is None
    assert await storage.get_movie_by_tmdb_id(999999) is None
