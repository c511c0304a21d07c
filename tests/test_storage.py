import pytest

from database import create_sessionmaker, create_tables
from errors import NotFound, StorageError
from storage import PostRepository


@pytest.mark.asyncio
async def test_create_then_get(engine):
    await create_tables(engine)
    async with create_sessionmaker(engine)() as db:
        posts = PostRepository(db)
        created = await posts.create_post("title", "content")
        fetched = await posts.get_post(created.id)

    assert fetched.id == created.id
    assert (fetched.title, fetched.content) == ("title", "content")


@pytest.mark.asyncio
async def test_list_posts(engine):
    await create_tables(engine)
    async with create_sessionmaker(engine)() as db:
        posts = PostRepository(db)
        assert list(await posts.list_posts()) == []
        await posts.create_post("a", "1")
        await posts.create_post("b", "2")
        titles = sorted(post.title for post in await posts.list_posts())

    assert titles == ["a", "b"]


@pytest.mark.asyncio
async def test_get_missing_post(engine):
    await create_tables(engine)
    async with create_sessionmaker(engine)() as db:
        with pytest.raises(NotFound):
            await PostRepository(db).get_post(42)


@pytest.mark.asyncio
async def test_missing_table_is_storage_error(engine):
    async with create_sessionmaker(engine)() as db:
        posts = PostRepository(db)
        with pytest.raises(StorageError):
            await posts.list_posts()
        with pytest.raises(StorageError):
            await posts.get_post(1)
        with pytest.raises(StorageError):
            await posts.create_post("t", "c")


@pytest.mark.asyncio
async def test_get_post_outside_id_range(engine):
    await create_tables(engine)
    async with create_sessionmaker(engine)() as db:
        with pytest.raises(NotFound):
            await PostRepository(db).get_post(2**63)
