"""
Post service — creation and reads for the Post aggregate.

Design notes
------------
- Title and slug uniqueness live in the database (unique constraints on
  both columns).  ``create_post`` inserts straight away and maps the
  resulting ``IntegrityError`` to ``Conflict``; there is no existence
  check to race against.
- Relationships are declared ``lazy="noload"``; every read states what it
  needs with ``joinedload`` (author) and ``selectinload`` (comments and
  their authors).
- Service functions flush but do not commit; the router commits
  before building the response.
"""
import re

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from blogapi.errors import Conflict, NotFound, ValidationError
from blogapi.models import Comment, Post, User
from blogapi.services.comment_service import comment_to_dict
from blogapi.services.user_service import author_summary

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_SLUG_STRIP_RE = re.compile(r"[^\w\s-]")
_SLUG_SPACE_RE = re.compile(r"[\s_]+")
_SLUG_DASH_RE = re.compile(r"-+")


def slugify(text: str) -> str:
    """Return a URL-safe, lowercase slug derived from *text*."""
    text = _SLUG_STRIP_RE.sub("", text.lower().strip())
    text = _SLUG_SPACE_RE.sub("-", text)
    return _SLUG_DASH_RE.sub("-", text).strip("-")


def _with_relations(q):
    # populate_existing: a post already in the session may hold a stale comment list.
    return q.options(
        joinedload(Post.author),
        selectinload(Post.comments).joinedload(Comment.author),
    ).execution_options(populate_existing=True)


def post_to_dict(post: Post) -> dict:
    """Serialise a Post with its author and comments."""
    return {
        "id": post.id,
        "title": post.title,
        "slug": post.slug,
        "content": post.content,
        "media": list(post.media or []),
        "author_id": post.author_id,
        "author": author_summary(post.author),
        "comments": [comment_to_dict(c) for c in post.comments],
        "created_at": post.created_at.isoformat() if post.created_at else None,
    }


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def create_post(
    db: AsyncSession,
    author_id: int,
    title: str,
    content: str,
    media: list[str] | None = None,
) -> dict:
    """
    Create a post owned by *author_id*.

    *media* holds filenames already written by the media store.
    """
    title = title.strip()
    slug = slugify(title)
    if not slug:
        raise ValidationError("Title must contain at least one letter or digit")
    if await db.get(User, author_id) is None:
        raise NotFound("User not found")

    post = Post(
        title=title,
        slug=slug,
        content=content,
        media=list(media or []),
        author_id=author_id,
    )
    db.add(post)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise Conflict("A post with this title already exists") from exc

    return await get_post(db, post.id)


async def get_post(db: AsyncSession, post_id: int) -> dict:
    q = _with_relations(select(Post).where(Post.id == post_id))
    post = (await db.execute(q)).unique().scalar_one_or_none()
    if post is None:
        raise NotFound("Post not found")
    return post_to_dict(post)


async def list_posts(db: AsyncSession, author_id: int | None = None) -> list[dict]:
    """Return posts in creation order, optionally restricted to one author."""
    q = select(Post)
    if author_id is not None:
        q = q.where(Post.author_id == author_id)
    q = _with_relations(q.order_by(Post.id))
    posts = (await db.execute(q)).unique().scalars().all()
    return [post_to_dict(p) for p in posts]


async def list_posts_by_author(db: AsyncSession, author_id: int) -> list[dict]:
    posts = await list_posts(db, author_id=author_id)
    if not posts:
        raise NotFound("No posts found for this user")
    return posts


async def get_post_by_slug(db: AsyncSession, slug: str) -> dict:
    q = _with_relations(select(Post).where(Post.slug == slug))
    post = (await db.execute(q)).unique().scalar_one_or_none()
    if post is None:
        raise NotFound("Post not found")
    return post_to_dict(post)
