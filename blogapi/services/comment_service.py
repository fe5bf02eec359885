"""
Comment service — comment creation and reads for the Post aggregate.

A post's comment list is the set of rows in ``comments`` whose ``post_id``
points at it, so creating a comment is a single INSERT inside the request
transaction.  Two comments created concurrently on the same post are two
independent rows; neither can overwrite the other.

Replies reference their parent comment, which must belong to the same post.
The parent's ``reply_count`` is bumped with an in-database increment in the
same transaction as the INSERT.
"""
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from blogapi.errors import NotFound, ValidationError
from blogapi.models import Comment, Post, User
from blogapi.services.user_service import author_summary


def comment_to_dict(comment: Comment, author: User | None = None) -> dict:
    return {
        "id": comment.id,
        "content": comment.content,
        "likes": comment.likes,
        "reply_count": comment.reply_count,
        "parent_id": comment.parent_id,
        "post_id": comment.post_id,
        "user": author_summary(author or comment.author, with_email=False),
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
    }


async def add_comment(
    db: AsyncSession,
    post_id: int,
    author_id: int,
    content: str,
    parent_id: int | None = None,
) -> dict:
    """
    Attach a new comment by *author_id* to the post *post_id*.

    Raises ``NotFound`` when the post, the author or the parent comment is
    missing and ``ValidationError`` when the parent sits under another post.
    """
    if await db.get(Post, post_id) is None:
        raise NotFound("Post not found")
    author = await db.get(User, author_id)
    if author is None:
        raise NotFound("User not found")

    if parent_id is not None:
        parent = await db.get(Comment, parent_id)
        if parent is None:
            raise NotFound("Parent comment not found")
        if parent.post_id != post_id:
            raise ValidationError("Parent comment belongs to a different post")

    comment = Comment(
        content=content,
        post_id=post_id,
        author_id=author_id,
        parent_id=parent_id,
    )
    db.add(comment)
    try:
        await db.flush()
    except IntegrityError as exc:
        # The post (or parent) was deleted between the lookup and the insert.
        raise NotFound("Post not found") from exc

    if parent_id is not None:
        await db.execute(
            update(Comment)
            .where(Comment.id == parent_id)
            .values(reply_count=Comment.reply_count + 1)
        )

    await db.refresh(comment)
    return comment_to_dict(comment, author)


async def list_comments(
    db: AsyncSession,
    post_id: int,
    limit: int = 5,
    skip: int = 0,
) -> list[dict]:
    """Return a window of *post_id*'s comments in the order they were written."""
    q = (
        select(Comment)
        .where(Comment.post_id == post_id)
        .options(joinedload(Comment.author))
        .order_by(Comment.id)
        .offset(skip)
        .limit(limit)
    )
    comments = (await db.execute(q)).unique().scalars().all()
    return [comment_to_dict(c) for c in comments]
