import logging
from collections.abc import Sequence
from typing import Annotated

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

import models
from database import get_db
from errors import NotFound, StorageError

logger = logging.getLogger(__name__)

# posts.id is a 32-bit INTEGER column
MIN_POST_ID = -(2**31)
MAX_POST_ID = 2**31 - 1


class PostRepository:
    """Runs the post queries against one database session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_posts(self) -> Sequence[models.Post]:
        try:
            result = await self.db.execute(select(models.Post))
            return result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Failed to fetch posts: %s", e)
            raise StorageError("Failed to fetch posts") from e

    async def get_post(self, post_id: int) -> models.Post:
        if not MIN_POST_ID <= post_id <= MAX_POST_ID:
            raise NotFound("Post not found")
        try:
            result = await self.db.execute(select(models.Post).where(models.Post.id == post_id))
            post = result.scalars().first()
        except SQLAlchemyError as e:
            logger.error("Failed to fetch post %s: %s", post_id, e)
            raise StorageError("Failed to fetch post") from e
        if post is None:
            raise NotFound("Post not found")
        return post

    async def create_post(self, title: str, content: str) -> models.Post:
        new_post = models.Post(title=title, content=content)
        try:
            self.db.add(new_post)
            await self.db.commit()
            await self.db.refresh(new_post)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to create post: %s", e)
            raise StorageError("Failed to create post") from e
        logger.debug("Created post %s", new_post.id)
        return new_post


def get_repository(db: Annotated[AsyncSession, Depends(get_db)]) -> PostRepository:
    return PostRepository(db)
